from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from courseware.models.course.activity_module_model import ActivityModuleType
from courseware.models.course.course_model import CourseStatus


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    slug: Optional[str] = Field(default=None, max_length=255)
    status: CourseStatus = CourseStatus.DRAFT


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    description: Optional[str]
    status: CourseStatus
    created_at: Optional[datetime] = None


class ActivityModuleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    type: ActivityModuleType


class ActivityModuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    type: ActivityModuleType
