"""
课程、选课与学习活跃数据库操作层
"""

from typing import Dict, List, Optional, Tuple
from datetime import date, datetime

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database.course_db import CourseDB, EnrollmentDB, CourseActivityDB
from app.models.database.subscription_db import SubscriptionDB


class CourseRepository:
    """课程数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_course_id(self, course_id: str) -> Optional[CourseDB]:
        """根据课程ID获取课程"""
        result = await self.db.execute(
            select(CourseDB).where(CourseDB.course_id == course_id)
        )
        return result.scalar_one_or_none()

    async def get_teacher_course_ids(self, teacher_id: str) -> List[str]:
        """获取老师名下有效课程的ID"""
        result = await self.db.execute(
            select(CourseDB.course_id)
            .where(
                and_(
                    CourseDB.teacher_id == teacher_id,
                    CourseDB.status == "active"
                )
            )
            .order_by(CourseDB.course_id)
        )
        return [row[0] for row in result.fetchall()]

    async def enrollment_exists(self, student_id: str, course_id: str) -> bool:
        """学员是否选了这门课"""
        result = await self.db.execute(
            select(func.count(EnrollmentDB.enrollment_id)).where(
                and_(
                    EnrollmentDB.student_id == student_id,
                    EnrollmentDB.course_id == course_id
                )
            )
        )
        return (result.scalar() or 0) > 0

    async def get_active_days(self, course_id: str, start: date, end: date) -> Dict[str, int]:
        """统计窗口 [start, end) 内每个学员的活跃天数"""
        result = await self.db.execute(
            select(
                CourseActivityDB.student_id,
                func.count(func.distinct(CourseActivityDB.activity_date)).label("active_days")
            )
            .where(
                and_(
                    CourseActivityDB.course_id == course_id,
                    CourseActivityDB.activity_date >= start,
                    CourseActivityDB.activity_date < end
                )
            )
            .group_by(CourseActivityDB.student_id)
        )
        return {row.student_id: row.active_days for row in result.fetchall()}

    async def get_course_engagement(self, start: date, end: date) -> Dict[Tuple[str, str], int]:
        """窗口 [start, end) 内各课程的学员活跃天数合计, 键为 (老师ID, 课程ID)"""
        result = await self.db.execute(
            select(
                CourseDB.teacher_id,
                CourseActivityDB.course_id,
                func.count(CourseActivityDB.activity_id).label("engagement")
            )
            .select_from(CourseActivityDB)
            .join(CourseDB, CourseDB.course_id == CourseActivityDB.course_id)
            .where(
                and_(
                    CourseActivityDB.activity_date >= start,
                    CourseActivityDB.activity_date < end
                )
            )
            .group_by(CourseDB.teacher_id, CourseActivityDB.course_id)
        )
        return {(row.teacher_id, row.course_id): row.engagement for row in result.fetchall()}


class SubscriptionRepository:
    """订阅状态数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def has_active_subscription(
        self,
        user_id: str,
        tier: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> bool:
        """是否存在有效且未过期的订阅, 传入tier时要求等级一致"""
        now = now or datetime.now()
        conditions = [
            SubscriptionDB.user_id == user_id,
            SubscriptionDB.status == "active",
            (SubscriptionDB.expires_at.is_(None)) | (SubscriptionDB.expires_at > now)
        ]
        if tier:
            conditions.append(SubscriptionDB.tier == tier)

        result = await self.db.execute(
            select(func.count(SubscriptionDB.subscription_id)).where(and_(*conditions))
        )
        return (result.scalar() or 0) > 0
