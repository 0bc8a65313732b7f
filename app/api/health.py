from fastapi import APIRouter, HTTPException
import logging

from app.core.config import settings
from app.core.redis import redis_manager
from app.core.database import database_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["健康检查"])


@router.get("")
async def health_check():
    """基础健康检查接口"""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }


@router.get("/database")
async def database_health():
    """数据库和缓存连接健康检查

    Redis只缓存只读投影, 不可用时服务降级运行, 不影响整体状态
    """
    health_status = {
        "database": False,
        "redis": False,
        "overall": False,
        "details": {}
    }

    try:
        db_status = await database_service.health_check()
        health_status["database"] = db_status["status"] == "healthy"
        health_status["details"]["database"] = db_status["message"]

        redis_status = await redis_manager.health_check()
        health_status["redis"] = redis_status.get("status") == "healthy"
        health_status["details"]["redis"] = redis_status

        health_status["overall"] = health_status["database"]

        if not health_status["overall"]:
            logger.warning(f"数据库连接检查失败: {health_status['details']}")
            return health_status

        logger.info("数据库连接检查通过")
        return health_status

    except Exception as e:
        logger.error(f"数据库健康检查异常: {str(e)}")
        raise HTTPException(
            status_code=503,
            detail={
                "error": "数据库连接失败",
                "message": str(e),
                "status": health_status
            }
        )
