"""
业务异常定义
服务层抛出, 由API层的异常处理器映射为HTTP状态码
"""

from typing import Any, Dict, Optional


class BusinessException(Exception):
    """业务异常基类"""

    status_code: int = 400
    error_code: str = "business_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "success": False,
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BusinessException):
    """输入不合法"""
    status_code = 400
    error_code = "validation_error"


class AuthorizationError(BusinessException):
    """操作者无权限"""
    status_code = 403
    error_code = "authorization_error"


class NotFoundError(BusinessException):
    """实体不存在"""
    status_code = 404
    error_code = "not_found"


class ConflictError(BusinessException):
    """状态冲突: 时段已被预约、重复购买、优惠券失效等"""
    status_code = 409
    error_code = "conflict"


class InsufficientFundsError(BusinessException):
    """提现金额超过可用余额"""
    status_code = 400
    error_code = "insufficient_funds"
