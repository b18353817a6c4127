from __future__ import annotations

import enum
from datetime import datetime
from typing import List, TYPE_CHECKING

from sqlalchemy import DateTime, Enum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courseware.db.base_class import Base

if TYPE_CHECKING:
    from .course_activity_module_link_model import CourseActivityModuleLink


class ActivityModuleType(str, enum.Enum):
    PAGE = "page"
    WHITEBOARD = "whiteboard"
    FILE = "file"
    ASSIGNMENT = "assignment"
    QUIZ = "quiz"
    DISCUSSION = "discussion"


class ActivityModule(Base):
    """Identity of a content-bearing module; its body lives elsewhere."""

    __tablename__ = "activity_modules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[ActivityModuleType] = mapped_column(
        Enum(ActivityModuleType, name="activity_module_type"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    links: Mapped[List["CourseActivityModuleLink"]] = relationship(back_populates="activity_module")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<ActivityModule(id={self.id}, type='{self.type}')>"
