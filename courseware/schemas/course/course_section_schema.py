from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _ensure_unique(ids: List[int], code: str) -> None:
    if len(set(ids)) != len(ids):
        raise ValueError(code)


class CourseSectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    parent_section_id: Optional[int] = Field(default=None, ge=1)


class CourseSectionUpdate(BaseModel):
    """Partial update; send ``parent_section_id: null`` to move to the root."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    parent_section_id: Optional[int] = Field(default=None, ge=1)
    content_order: Optional[int] = Field(default=None, ge=0)


class CourseSectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    description: Optional[str]
    parent_section_id: Optional[int]
    content_order: int


class SectionTreeNode(BaseModel):
    id: int
    course_id: int
    title: str
    description: str
    parent_section_id: Optional[int]
    content_order: int
    activity_modules_count: int
    child_sections: List["SectionTreeNode"] = []


class SectionReorderIn(BaseModel):
    new_content_order: int = Field(..., ge=0)


class SectionBatchReorderIn(BaseModel):
    section_ids: List[int] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _ensure_unique_ids(self) -> "SectionBatchReorderIn":
        _ensure_unique(self.section_ids, "duplicate_section")
        return self


class SectionNestIn(BaseModel):
    parent_section_id: int = Field(..., ge=1)


class SectionMoveIn(BaseModel):
    parent_section_id: Optional[int] = Field(default=None, ge=1)
    new_order: int = Field(..., ge=0)


class ReorderResultOut(BaseModel):
    success: bool
    reordered_count: int


class ActivityModuleLinkCreate(BaseModel):
    activity_module_id: int = Field(..., ge=1)
    order: Optional[int] = Field(default=None, ge=0)
    settings: Optional[Dict[str, Any]] = None


class ActivityModuleLinkReorderIn(BaseModel):
    link_ids: List[int] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _ensure_unique_ids(self) -> "ActivityModuleLinkReorderIn":
        _ensure_unique(self.link_ids, "duplicate_link")
        return self


class ActivityModuleLinkMoveIn(BaseModel):
    section_id: int = Field(..., ge=1)
    new_order: Optional[int] = Field(default=None, ge=0)


class ActivityModuleLinkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    activity_module_id: int
    section_id: int
    content_order: int
    settings: Optional[Dict[str, Any]] = None


class DeletedOut(BaseModel):
    success: bool
    id: int
