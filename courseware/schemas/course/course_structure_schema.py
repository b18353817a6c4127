from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from courseware.services.content_order import ContentKind
from courseware.services.course_section_service import MoveLocation


class StructureModule(BaseModel):
    id: int
    title: str
    type: str


class StructureModuleNode(BaseModel):
    id: int
    type: Literal["activity-module"]
    content_order: int
    module: StructureModule


class StructureSectionNode(BaseModel):
    id: int
    type: Literal["section"]
    title: str
    description: str
    content_order: int
    content: List["StructureNode"] = []


StructureNode = Annotated[
    Union[StructureSectionNode, StructureModuleNode],
    Field(discriminator="type"),
]

StructureSectionNode.model_rebuild()


class CourseStructureOut(BaseModel):
    course_id: int
    sections: List[StructureSectionNode]


class SectionPathItem(BaseModel):
    id: int
    title: str


class FlatModuleOut(BaseModel):
    link_id: int
    module_id: int
    title: str
    type: str
    section_id: int
    section_path: List[SectionPathItem]


class ModuleNavigationOut(BaseModel):
    previous_module: Optional[FlatModuleOut] = None
    next_module: Optional[FlatModuleOut] = None


class ContentRefIn(BaseModel):
    kind: ContentKind
    id: int = Field(..., ge=1)


class GeneralMoveIn(BaseModel):
    source: ContentRefIn
    target: ContentRefIn
    location: MoveLocation


class GeneralMoveOut(BaseModel):
    kind: ContentKind
    id: int
    parent_section_id: Optional[int]
    content_order: int
