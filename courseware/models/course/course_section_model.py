from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courseware.db.base_class import Base

if TYPE_CHECKING:
    from .course_model import Course
    from .course_activity_module_link_model import CourseActivityModuleLink


class CourseSection(Base):
    """A node of the course content tree.

    ``content_order`` is shared with the activity module links living under the
    same parent: sections and links of one sibling group form a single
    ``0..n-1`` sequence.
    """

    __tablename__ = "course_sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # NULL means the section sits at the root of the course.
    parent_section_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("course_sections.id"), index=True, nullable=True
    )
    content_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    course: Mapped["Course"] = relationship(back_populates="sections")
    activity_module_links: Mapped[List["CourseActivityModuleLink"]] = relationship(
        back_populates="section"
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            "<CourseSection(id={0}, course_id={1}, parent_section_id={2}, content_order={3})>".format(
                self.id,
                self.course_id,
                self.parent_section_id,
                self.content_order,
            )
        )
