"""
课程、选课与学习活动数据库模型
收益计算依赖这几张表: 课程归属老师, 选课关系, 学员每日活跃记录
"""

from sqlalchemy import Column, String, Date, DateTime, UniqueConstraint
from datetime import datetime
from app.core.database import Base


class CourseDB(Base):
    """课程数据库表"""

    __tablename__ = "courses"

    course_id = Column(String(50), primary_key=True, comment="课程ID")
    teacher_id = Column(String(50), nullable=False, index=True, comment="授课老师ID")
    title = Column(String(200), nullable=False, comment="课程名称")
    status = Column(String(20), default="active", index=True, comment="课程状态")

    created_at = Column(DateTime, default=datetime.now, comment="创建时间")

    __table_args__ = (
        {'comment': '课程信息表'}
    )


class EnrollmentDB(Base):
    """学员选课表"""

    __tablename__ = "enrollments"

    enrollment_id = Column(String(50), primary_key=True, comment="选课ID")
    course_id = Column(String(50), nullable=False, index=True, comment="课程ID")
    student_id = Column(String(50), nullable=False, index=True, comment="学员ID")
    enrolled_at = Column(DateTime, default=datetime.now, comment="选课时间")

    __table_args__ = (
        UniqueConstraint("course_id", "student_id", name="uq_enrollments_course_student"),
        {'comment': '选课记录表'}
    )


class CourseActivityDB(Base):
    """学员学习活跃记录, 同一天多次学习只记一条"""

    __tablename__ = "course_activities"

    activity_id = Column(String(50), primary_key=True, comment="记录ID")
    course_id = Column(String(50), nullable=False, index=True, comment="课程ID")
    student_id = Column(String(50), nullable=False, comment="学员ID")
    activity_date = Column(Date, nullable=False, comment="活跃日期")

    __table_args__ = (
        UniqueConstraint("course_id", "student_id", "activity_date", name="uq_course_activity_day"),
        {'comment': '学习活跃记录表'}
    )
