"""
订阅状态数据库模型
订阅计费由外部系统负责, 这里只保存同步过来的状态
"""

from sqlalchemy import Column, String, DateTime
from datetime import datetime
from app.core.database import Base


class SubscriptionDB(Base):
    """用户订阅状态表"""

    __tablename__ = "subscriptions"

    subscription_id = Column(String(50), primary_key=True, comment="订阅ID")
    user_id = Column(String(50), nullable=False, index=True, comment="用户ID")
    tier = Column(String(50), nullable=False, comment="订阅等级")
    status = Column(String(20), nullable=False, default="active", comment="订阅状态")
    expires_at = Column(DateTime, comment="到期时间")
    updated_at = Column(DateTime, default=datetime.now, comment="更新时间")

    __table_args__ = (
        {'comment': '用户订阅表'}
    )
