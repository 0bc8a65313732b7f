from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class Environment(str, Enum):

    """运行环境枚举"""
    TESTING = "testing"
    PRODUCTION = "production"


class ActivityPayoutTier(BaseModel):
    """活跃天数分档: 达到min_days天的学员按fraction比例计费"""
    min_days: int = Field(..., ge=0)
    fraction: Decimal = Field(..., ge=0, le=1)


class Settings(BaseSettings):

    # 应用基础配置
    app_name: str = "Learning Commerce Core"
    app_version: str = "1.0.0"
    environment: Environment = Environment.TESTING
    debug: bool = True
    secret_key: str = "secret-key-change-in-production"

    # 数据库配置
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "learning_commerce_db"
    db_user: str = "learning_commerce_user"
    db_password: str = "learning_commerce_password"

    # Redis配置 (只读投影缓存)
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    # 结算与计费配置
    default_currency: str = "USD"
    teacher_revenue_share_ratio: Decimal = Decimal("0.80")
    per_student_rate: Decimal = Decimal("0.02")
    activity_payout_tiers: List[ActivityPayoutTier] = Field(
        default_factory=lambda: [ActivityPayoutTier(min_days=15, fraction=Decimal("1"))]
    )
    platform_price_markup: Decimal = Decimal("0.10")
    subscription_platform_fee_ratio: Decimal = Decimal("0.30")
    payment_deadline_hours: int = 24

    # 缓存配置
    policy_cache_ttl: int = 1800

    # 日志配置
    log_level: str = "INFO"

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    @property
    def database_url_computed(self) -> str:
        """计算数据库URL"""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def redis_url_computed(self) -> str:
        """计算Redis URL"""
        if self.redis_url:
            return self.redis_url
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    class Config:
        env_file = ".env"
        case_sensitive = False


# 全局配置实例
settings = Settings()
