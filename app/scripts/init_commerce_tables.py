"""
交易结算数据库表初始化脚本

运行方式:
python -m app.scripts.init_commerce_tables
python -m app.scripts.init_commerce_tables --check
"""

import asyncio
import logging
import sys

from sqlalchemy import inspect

import app.models.database  # noqa: F401  注册全部表
from app.core.database import Base, init_database, close_database

logger = logging.getLogger(__name__)


async def create_commerce_tables():
    """创建交易结算相关数据表"""
    try:
        await init_database()

        # 导入全局engine
        from app.core.database import engine as db_engine

        if not db_engine:
            raise RuntimeError("数据库引擎未初始化")

        logger.info("开始创建交易结算数据表...")
        async with db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"数据表创建完成: {sorted(Base.metadata.tables)}")

    except Exception as e:
        logger.error(f"创建交易结算数据表失败: {e}")
        raise
    finally:
        await close_database()


async def check_tables_exist() -> bool:
    """检查表是否存在"""
    try:
        await init_database()

        from app.core.database import engine as db_engine

        if not db_engine:
            raise RuntimeError("数据库引擎未初始化")

        async with db_engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        missing_tables = set(Base.metadata.tables) - set(tables)
        if missing_tables:
            logger.warning(f"缺少表: {sorted(missing_tables)}")
            return False

        logger.info("所有交易结算表都存在")
        return True

    except Exception as e:
        logger.error(f"检查表存在性失败: {e}")
        return False
    finally:
        await close_database()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if "--check" in sys.argv:
        ok = asyncio.run(check_tables_exist())
        sys.exit(0 if ok else 1)

    asyncio.run(create_commerce_tables())
