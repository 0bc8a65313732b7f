"""
内容定价策略数据库模型
"""

from sqlalchemy import Column, String, Numeric, DateTime, PrimaryKeyConstraint
from datetime import datetime
from app.core.database import Base


class ContentMonetizationPolicyDB(Base):
    """模块/项目的定价策略"""

    __tablename__ = "content_monetization_policies"

    content_type = Column(String(20), nullable=False, comment="内容类型")
    content_id = Column(String(50), nullable=False, comment="内容ID")

    # 归属信息, 用于收益归集
    teacher_id = Column(String(50), index=True, comment="所属老师ID")
    course_id = Column(String(50), comment="所属课程ID")

    monetization_type = Column(String(20), nullable=False, default="FREE", comment="变现方式")
    price = Column(Numeric(12, 2), comment="价格")
    currency = Column(String(3), nullable=False, default="USD", comment="币种")
    subscription_tier = Column(String(50), comment="所需订阅等级")

    updated_at = Column(DateTime, default=datetime.now, comment="更新时间")

    __table_args__ = (
        PrimaryKeyConstraint("content_type", "content_id"),
        {'comment': '内容定价策略表'}
    )
