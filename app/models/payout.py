"""
提现相关数据模型
"""

from decimal import Decimal
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class PayoutStatus(str, Enum):
    """提现审核状态"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PayoutRequest(BaseModel):
    """提现申请"""

    payout_id: str = Field(..., description="提现ID")
    teacher_id: str = Field(..., description="老师ID")
    amount: Decimal = Field(..., gt=0, description="提现金额")
    currency: str = Field(default="USD")
    status: PayoutStatus = Field(default=PayoutStatus.PENDING)
    method: str = Field(default="bank_transfer", description="打款方式")
    details: Dict[str, Any] = Field(default_factory=dict, description="打款信息")
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    external_transaction_id: Optional[str] = None
    reason: Optional[str] = None
    requested_at: datetime = Field(default_factory=datetime.now)


class PayoutCreate(BaseModel):
    """提现申请请求, 金额为空时提取全部可用余额"""

    amount: Optional[Decimal] = None
    method: str = Field(default="bank_transfer", min_length=1, max_length=50)
    details: Dict[str, Any] = Field(default_factory=dict)


class PayoutApprove(BaseModel):
    external_transaction_id: Optional[str] = Field(None, max_length=100)


class PayoutReject(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class PayoutHistory(BaseModel):
    """分页提现记录"""

    teacher_id: str
    page: int
    limit: int
    total: int
    items: List[PayoutRequest] = Field(default_factory=list)
