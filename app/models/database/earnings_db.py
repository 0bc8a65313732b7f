"""
老师收益相关数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, DateTime, UniqueConstraint
from datetime import datetime
from app.core.database import Base


class MonthlyEarningsDB(Base):
    """老师单门课程单月收益"""

    __tablename__ = "monthly_earnings"

    record_id = Column(String(50), primary_key=True, comment="记录ID")
    teacher_id = Column(String(50), nullable=False, index=True, comment="老师ID")
    course_id = Column(String(50), nullable=False, comment="课程ID")
    year = Column(Integer, nullable=False, comment="年")
    month = Column(Integer, nullable=False, comment="月")

    # 活跃学员部分
    active_student_count = Column(Integer, nullable=False, default=0, comment="计费学员数")
    activity_gross = Column(Numeric(12, 2), nullable=False, default=0, comment="活跃计费金额")

    # 销售部分
    sales_gross = Column(Numeric(12, 2), nullable=False, default=0, comment="销售金额")

    # 订阅收入池分配部分
    subscription_gross = Column(Numeric(12, 2), nullable=False, default=0, comment="订阅分配金额")

    gross_amount = Column(Numeric(12, 2), nullable=False, default=0, comment="总收益")
    teacher_share = Column(Numeric(12, 2), nullable=False, default=0, comment="老师分成")
    currency = Column(String(3), nullable=False, default="USD", comment="币种")

    computed_at = Column(DateTime, nullable=False, comment="计算时间")

    __table_args__ = (
        UniqueConstraint("teacher_id", "course_id", "year", "month", name="uq_monthly_earnings_key"),
        {'comment': '月度收益表'}
    )


class PaymentEarningDB(Base):
    """支付完成后归集到老师的销售记录, 每笔支付最多一条"""

    __tablename__ = "payment_earnings"

    payment_id = Column(String(50), primary_key=True, comment="支付ID")
    teacher_id = Column(String(50), nullable=False, index=True, comment="老师ID")
    course_id = Column(String(50), nullable=False, comment="课程ID")
    year = Column(Integer, nullable=False, comment="年")
    month = Column(Integer, nullable=False, comment="月")
    source_type = Column(String(20), nullable=False, comment="来源类型")
    amount = Column(Numeric(12, 2), nullable=False, comment="销售金额")
    recorded_at = Column(DateTime, default=datetime.now, comment="记录时间")

    __table_args__ = (
        {'comment': '销售收益明细表'}
    )


class TeacherAccountDB(Base):
    """老师结算账户: version用于串行化同一老师的余额变更, 其余字段为摘要快照"""

    __tablename__ = "teacher_accounts"

    teacher_id = Column(String(50), primary_key=True, comment="老师ID")
    version = Column(Integer, nullable=False, default=0, comment="版本号")

    lifetime_share = Column(Numeric(12, 2), nullable=False, default=0, comment="累计分成")
    paid_out = Column(Numeric(12, 2), nullable=False, default=0, comment="已提现")
    pending = Column(Numeric(12, 2), nullable=False, default=0, comment="审核中")
    available = Column(Numeric(12, 2), nullable=False, default=0, comment="可提现")

    last_calculated = Column(DateTime, comment="快照时间")

    __table_args__ = (
        {'comment': '老师结算账户表'}
    )


class SubscriptionRevenuePoolDB(Base):
    """订阅收入池: 每个自然月一条, 扣除平台费后按学习活跃度分给老师"""

    __tablename__ = "subscription_revenue_pools"

    pool_id = Column(String(50), primary_key=True, comment="收入池ID")
    year = Column(Integer, nullable=False, comment="年")
    month = Column(Integer, nullable=False, comment="月")

    total_revenue = Column(Numeric(12, 2), nullable=False, default=0, comment="订阅总收入")
    platform_fee = Column(Numeric(12, 2), nullable=False, default=0, comment="平台费")
    teacher_pool = Column(Numeric(12, 2), nullable=False, default=0, comment="老师分配池")
    total_engagement = Column(Integer, nullable=False, default=0, comment="学员活跃天数合计")

    status = Column(String(20), nullable=False, default="CALCULATING", comment="状态")
    teacher_count = Column(Integer, nullable=False, default=0, comment="分配老师数")
    distributed_amount = Column(Numeric(12, 2), nullable=False, default=0, comment="已分配金额")

    computed_at = Column(DateTime, nullable=False, comment="计算时间")
    distributed_at = Column(DateTime, comment="分配时间")

    __table_args__ = (
        UniqueConstraint("year", "month", name="uq_subscription_pool_period"),
        {'comment': '订阅收入池表'}
    )
