"""
测试配置文件 - pytest fixtures和共用配置
"""

import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

import app.models.database  # noqa: F401  注册全部表
from app.core.database import Base
from app.models.database.booking_db import LessonSlotDB
from app.models.database.coupon_db import CouponDB
from app.models.database.course_db import CourseDB, CourseActivityDB, EnrollmentDB
from app.models.database.earnings_db import MonthlyEarningsDB
from app.models.database.monetization_db import ContentMonetizationPolicyDB
from app.models.database.payment_db import PaymentDB
from app.models.database.subscription_db import SubscriptionDB
from app.services.container import ServiceContainer


@pytest_asyncio.fixture(scope="function")
async def test_db_engine(tmp_path):
    """测试数据库引擎 - 临时SQLite文件

    每个事务以 BEGIN IMMEDIATE 开始, 并发写入按事务串行, 与PostgreSQL行锁的效果一致
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'commerce_test.db'}",
        echo=False,
        poolclass=NullPool,
        connect_args={"timeout": 30}
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(test_db_engine):
    return async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncSession:
    """测试数据库会话"""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture
def notifier():
    """模拟通知发送"""
    mock = AsyncMock()
    mock.payment_confirmed = AsyncMock()
    mock.payout_decided = AsyncMock()
    return mock


@pytest.fixture
def services(db_session, notifier):
    """绑定测试会话的服务容器"""
    return ServiceContainer(db_session, notifier=notifier)


class Seeder:
    """测试数据构造"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def slot(
        self,
        teacher_id: str = "teacher_001",
        course_id: Optional[str] = "course_001",
        start_in: timedelta = timedelta(days=3),
        price: Decimal = Decimal("30.00"),
        is_available: bool = True
    ) -> LessonSlotDB:
        start = datetime.now() + start_in
        return await self._save(LessonSlotDB(
            slot_id=f"SLOT_{uuid.uuid4().hex[:8]}",
            teacher_id=teacher_id,
            course_id=course_id,
            subject="一对一辅导",
            start_time=start,
            end_time=start + timedelta(hours=1),
            price=price,
            is_available=is_available,
            is_booked=False
        ))

    async def coupon(
        self,
        code: str,
        coupon_type: str = "PERCENTAGE",
        value: Decimal = Decimal("20"),
        **kwargs
    ) -> CouponDB:
        fields = {
            "min_purchase": None,
            "max_discount": None,
            "usage_limit": None,
            "usage_count": 0,
            "expires_at": None,
            "is_active": True,
            "applicable_to": "ALL",
            "scope_id": None,
        }
        fields.update(kwargs)
        return await self._save(CouponDB(
            coupon_id=f"CPN_{uuid.uuid4().hex[:8]}",
            code=code,
            coupon_type=coupon_type,
            value=value,
            **fields
        ))

    async def policy(
        self,
        content_id: str,
        monetization_type: str = "PREMIUM",
        price: Optional[Decimal] = Decimal("100.00"),
        content_type: str = "MODULE",
        teacher_id: Optional[str] = "teacher_001",
        course_id: Optional[str] = "course_001",
        subscription_tier: Optional[str] = None
    ) -> ContentMonetizationPolicyDB:
        return await self._save(ContentMonetizationPolicyDB(
            content_type=content_type,
            content_id=content_id,
            teacher_id=teacher_id,
            course_id=course_id,
            monetization_type=monetization_type,
            price=price,
            currency="USD",
            subscription_tier=subscription_tier
        ))

    async def course(self, course_id: str, teacher_id: str = "teacher_001") -> CourseDB:
        return await self._save(CourseDB(course_id=course_id, teacher_id=teacher_id, title=f"课程 {course_id}"))

    async def enrollment(self, student_id: str, course_id: str) -> EnrollmentDB:
        return await self._save(EnrollmentDB(
            enrollment_id=f"ENR_{uuid.uuid4().hex[:8]}",
            course_id=course_id,
            student_id=student_id
        ))

    async def activity(self, student_id: str, course_id: str, first_day: date, days: int) -> None:
        """连续days天的学习记录"""
        for offset in range(days):
            self.session.add(CourseActivityDB(
                activity_id=f"ACT_{uuid.uuid4().hex[:10]}",
                course_id=course_id,
                student_id=student_id,
                activity_date=first_day + timedelta(days=offset)
            ))
        await self.session.flush()

    async def subscription(self, user_id: str, tier: str = "pro", expires_in: Optional[timedelta] = timedelta(days=30)):
        return await self._save(SubscriptionDB(
            subscription_id=f"SUB_{uuid.uuid4().hex[:8]}",
            user_id=user_id,
            tier=tier,
            status="active",
            expires_at=datetime.now() + expires_in if expires_in is not None else None
        ))

    async def monthly_earnings(
        self,
        teacher_id: str,
        teacher_share: Decimal,
        course_id: str = "course_001",
        year: int = 2024,
        month: int = 5
    ) -> MonthlyEarningsDB:
        """直接写入一条月度收益, 用于构造可提现余额"""
        return await self._save(MonthlyEarningsDB(
            record_id=f"ME_{uuid.uuid4().hex[:8]}",
            teacher_id=teacher_id,
            course_id=course_id,
            year=year,
            month=month,
            active_student_count=0,
            activity_gross=Decimal("0"),
            sales_gross=teacher_share,
            gross_amount=teacher_share,
            teacher_share=teacher_share,
            currency="USD",
            computed_at=datetime.now()
        ))

    async def payment(
        self,
        payment_id: str,
        target_type: str = "MODULE",
        target_id: str = "module_001",
        amount: Decimal = Decimal("100.00"),
        payer_id: str = "student_001",
        paid_at: Optional[datetime] = None
    ) -> PaymentDB:
        """直接写入一笔支付, 传入paid_at时为已完成"""
        return await self._save(PaymentDB(
            payment_id=payment_id,
            payer_id=payer_id,
            target_type=target_type,
            target_id=target_id,
            original_amount=amount,
            discount_amount=Decimal("0"),
            amount=amount,
            currency="USD",
            status="COMPLETED" if paid_at else "PENDING",
            provider="stripe",
            paid_at=paid_at,
            created_at=paid_at or datetime.now(),
            updated_at=paid_at or datetime.now()
        ))


@pytest.fixture
def seed(db_session):
    return Seeder(db_session)
