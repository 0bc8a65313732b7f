"""
金额工具: 统一使用Decimal并保留到分
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, str, float, None]


def to_money(value: MoneyLike) -> Decimal:
    """转换为两位小数的Decimal, None视为0"""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        # float先转字符串, 避免二进制误差带入
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
