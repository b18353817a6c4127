"""Utility helpers for test factories."""

from __future__ import annotations

from itertools import count

from courseware.crud.document_store import DocumentStore
from courseware.models.course.activity_module_model import ActivityModule, ActivityModuleType
from courseware.models.course.course_activity_module_link_model import CourseActivityModuleLink
from courseware.models.course.course_model import Course
from courseware.models.course.course_section_model import CourseSection
from courseware.services.content_order import load_sibling_group
from courseware.services.course_section_service import CourseSectionService

_slugs = count(1)


def create_course(db, **kwargs) -> Course:
    defaults = {
        "title": "Cours de test",
        "slug": f"course-{next(_slugs)}",
        "description": "A course used in tests",
    }
    defaults.update(kwargs)
    course = Course(**defaults)
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def create_section(db, course: Course, title: str = "Section", parent: CourseSection | None = None, **kwargs) -> CourseSection:
    return CourseSectionService(db).create_section(
        course_id=course.id,
        title=title,
        description=kwargs.pop("description", f"{title} description"),
        parent_section_id=parent.id if parent is not None else None,
    )


def create_activity_module(db, title: str = "Module", type: ActivityModuleType = ActivityModuleType.PAGE) -> ActivityModule:
    module = ActivityModule(title=title, type=type)
    db.add(module)
    db.commit()
    db.refresh(module)
    return module


def link_module(db, section: CourseSection, title: str = "Module", **kwargs) -> CourseActivityModuleLink:
    """Create a module and attach it to *section*."""
    module = create_activity_module(db, title=title, type=kwargs.pop("type", ActivityModuleType.PAGE))
    return CourseSectionService(db).add_activity_module_to_section(module.id, section.id, **kwargs)


def group_orders(db, course: Course, parent: CourseSection | None = None) -> list[tuple[str, int, int]]:
    """``(kind, id, content_order)`` of a sibling group in stored order."""
    db.expire_all()
    parent_id = parent.id if parent is not None else None
    return [
        (entry.kind.value, entry.id, entry.content_order)
        for entry in load_sibling_group(DocumentStore(db), course.id, parent_id)
    ]


def group_ids(db, course: Course, parent: CourseSection | None = None) -> list[int]:
    return [item_id for _, item_id, _ in group_orders(db, course, parent)]


def assert_dense(db, course: Course) -> None:
    """Every sibling group of *course* reads ``0..n-1``."""
    db.expire_all()
    parents = [None] + [section.id for section in db.query(CourseSection).filter_by(course_id=course.id)]
    store = DocumentStore(db)
    for parent_id in parents:
        orders = sorted(entry.content_order for entry in load_sibling_group(store, course.id, parent_id))
        assert orders == list(range(len(orders))), (parent_id, orders)
