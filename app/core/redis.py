import redis.asyncio as aioredis
from typing import Any, Dict, Optional
from app.core.config import settings
import structlog

"redis连接管理器"

logger = structlog.get_logger()


class RedisManager:
    """Redis连接管理器"""

    def __init__(self):
        self.redis_pool: Optional[aioredis.Redis] = None

    async def init_redis(self) -> None:
        """初始化Redis连接池"""
        try:
            self.redis_pool = aioredis.from_url(
                settings.redis_url_computed,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True
            )
            # 测试连接
            await self.redis_pool.ping()
            logger.info("Redis连接初始化成功")
        except Exception as e:
            logger.error("Redis连接初始化失败", error=str(e))
            raise

    async def close_redis(self) -> None:
        """关闭Redis连接"""
        if self.redis_pool:
            await self.redis_pool.aclose()
            self.redis_pool = None
            logger.info("Redis连接已关闭")

    async def health_check(self) -> Dict[str, Any]:
        """Redis健康检查"""
        if not self.redis_pool:
            return {"status": "not_initialized"}
        try:
            await self.redis_pool.ping()
            info = await self.redis_pool.info()
            return {
                "status": "healthy",
                "version": info.get("redis_version"),
                "connected_clients": info.get("connected_clients"),
                "used_memory": info.get("used_memory_human"),
            }
        except Exception as e:
            logger.error("Redis健康检查失败", error=str(e))
            return {"status": "error", "error": str(e)}


# 全局Redis管理器实例
redis_manager = RedisManager()


def get_redis_client() -> Optional[aioredis.Redis]:
    """获取Redis客户端实例"""
    return redis_manager.redis_pool
