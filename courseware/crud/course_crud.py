import logging
import re
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from courseware.models.course.activity_module_model import ActivityModule, ActivityModuleType
from courseware.models.course.course_model import Course, CourseStatus
from courseware.services.errors import InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    return slug or "course"


def create_course(
    db: Session,
    *,
    title: str,
    description: Optional[str] = None,
    slug: Optional[str] = None,
    status: CourseStatus = CourseStatus.DRAFT,
) -> Course:
    if not title or not title.strip():
        raise InvalidArgumentError("Course title is required")

    slug = slugify(slug or title)
    if db.scalar(select(Course.id).where(Course.slug == slug)) is not None:
        raise InvalidArgumentError(f"A course with slug '{slug}' already exists")

    db_course = Course(title=title.strip(), description=description, slug=slug, status=status)
    db.add(db_course)
    db.commit()
    db.refresh(db_course)
    logger.info("Course %s created (slug=%s)", db_course.id, db_course.slug)
    return db_course


def get_course(db: Session, course_id: int) -> Course:
    db_course = db.get(Course, course_id)
    if db_course is None:
        raise NotFoundError(f"Course {course_id} not found")
    return db_course


def list_courses(db: Session, skip: int = 0, limit: int = 100) -> List[Course]:
    return list(db.scalars(select(Course).order_by(Course.id).offset(skip).limit(limit)).all())


def create_activity_module(db: Session, *, title: str, type: ActivityModuleType) -> ActivityModule:
    if not title or not title.strip():
        raise InvalidArgumentError("Activity module title is required")

    db_module = ActivityModule(title=title.strip(), type=ActivityModuleType(type))
    db.add(db_module)
    db.commit()
    db.refresh(db_module)
    logger.info("Activity module %s created (%s)", db_module.id, db_module.type.value)
    return db_module
