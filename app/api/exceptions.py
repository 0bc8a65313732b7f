"""
API异常处理器
把业务异常映射为HTTP状态码, 统一返回 {"success": false, "error": ..., "message": ...}
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import BusinessException

logger = logging.getLogger(__name__)

__all__ = [
    "BusinessException",
    "business_exception_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "database_exception_handler",
    "general_exception_handler",
]


async def business_exception_handler(request: Request, exc: BusinessException) -> JSONResponse:
    """业务异常"""
    logger.info(f"业务异常 {request.method} {request.url.path}: {exc.error_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求参数校验失败"""
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", [])),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "request_validation_error",
            "message": "请求参数校验失败",
            "details": details,
        }
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": "http_error",
            "message": str(exc.detail),
        }
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """数据库异常"""
    logger.error(f"数据库异常 {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "database_error",
            "message": "数据库操作失败",
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """未处理的异常"""
    logger.exception(f"未处理异常 {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "internal_error",
            "message": "服务器内部错误",
        }
    )
