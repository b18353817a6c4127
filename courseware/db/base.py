"""Registers every SQLAlchemy model so ``Base.metadata`` knows the full schema."""

from courseware.db.base_class import Base

# Courses and content tree
from courseware.models.course.course_model import Course
from courseware.models.course.course_section_model import CourseSection
from courseware.models.course.activity_module_model import ActivityModule
from courseware.models.course.course_activity_module_link_model import CourseActivityModuleLink

__all__ = (
    "Base",
    "Course",
    "CourseSection",
    "ActivityModule",
    "CourseActivityModuleLink",
)
