from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courseware.db.base_class import Base

if TYPE_CHECKING:
    from .activity_module_model import ActivityModule
    from .course_model import Course
    from .course_section_model import CourseSection


class CourseActivityModuleLink(Base):
    __tablename__ = "course_activity_module_links"
    __table_args__ = (
        UniqueConstraint("activity_module_id", "section_id", name="uq_link_module_section"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(Integer, ForeignKey("courses.id"), index=True, nullable=False)
    activity_module_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("activity_modules.id"), index=True, nullable=False
    )
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("course_sections.id"), index=True, nullable=False
    )
    content_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    # Per-course overrides, e.g. {"name": "Week 1 reading"}.
    settings: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    course: Mapped["Course"] = relationship(back_populates="activity_module_links")
    section: Mapped["CourseSection"] = relationship(back_populates="activity_module_links")
    activity_module: Mapped["ActivityModule"] = relationship(back_populates="links")

    @property
    def display_name(self) -> str:
        name = (self.settings or {}).get("name")
        if name:
            return name
        return self.activity_module.title

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            "<CourseActivityModuleLink(id={0}, module={1}, section={2}, content_order={3})>".format(
                self.id,
                self.activity_module_id,
                self.section_id,
                self.content_order,
            )
        )
