from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from app.core.config import settings
from app.core.redis import redis_manager
from app.core.database import init_database, close_database
from app.api.health import router as health_router
from app.api.payments import router as payments_router
from app.api.bookings import router as bookings_router
from app.api.coupons import router as coupons_router
from app.api.content import router as content_router
from app.api.earnings import router as earnings_router
from app.api.admin import router as admin_router
from app.api.exceptions import (
    validation_exception_handler,
    http_exception_handler,
    database_exception_handler,
    general_exception_handler,
    business_exception_handler,
    BusinessException
)

# 简化日志配置
import logging

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info(f"正在启动 {settings.app_name}")

    try:
        await init_database()
        logger.info("数据库初始化成功")
    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    try:
        await redis_manager.init_redis()
        logger.info("Redis初始化成功")
    except Exception as e:
        # 缓存不可用时降级运行
        logger.warning(f"Redis初始化失败, 缓存已禁用: {e}")

    logger.info("应用启动完成")

    yield

    logger.info("正在关闭应用")
    await close_database()
    await redis_manager.close_redis()
    logger.info("应用关闭完成")


# 创建FastAPI应用
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="在线学习平台交易结算核心: 课时预约、支付确认、优惠券、内容权限、老师收益与提现",
    debug=settings.debug,
    lifespan=lifespan
)

# CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 注册路由
app.include_router(health_router)
app.include_router(payments_router)
app.include_router(bookings_router)
app.include_router(coupons_router)
app.include_router(content_router)
app.include_router(earnings_router)
app.include_router(admin_router)

# 注册异常处理器
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(BusinessException, business_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": f"欢迎使用 {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8002,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
