from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseware.api.v1.dependencies import get_db, unwrap_or_raise
from courseware.schemas.course import course_section_schema as schema
from courseware.services.course_section_service import CourseSectionService
from courseware.services.result import attempt

router = APIRouter()


@router.post(
    "/courses/{course_id}/sections",
    response_model=schema.CourseSectionOut,
    status_code=status.HTTP_201_CREATED,
)
def create_section(course_id: int, payload: schema.CourseSectionCreate, db: Session = Depends(get_db)):
    service = CourseSectionService(db)
    return unwrap_or_raise(
        attempt(
            service.create_section,
            course_id=course_id,
            title=payload.title,
            description=payload.description,
            parent_section_id=payload.parent_section_id,
        )
    )


@router.get("/courses/{course_id}/sections", response_model=List[schema.CourseSectionOut])
def list_sections(course_id: int, root_only: bool = False, db: Session = Depends(get_db)):
    service = CourseSectionService(db)
    finder = service.find_root_sections if root_only else service.find_sections_by_course
    return unwrap_or_raise(attempt(finder, course_id))


@router.get("/courses/{course_id}/section-tree", response_model=List[schema.SectionTreeNode])
def read_section_tree(course_id: int, db: Session = Depends(get_db)):
    return unwrap_or_raise(attempt(CourseSectionService(db).get_section_tree, course_id))


@router.post("/sections/reorder", response_model=schema.ReorderResultOut)
def reorder_sections(payload: schema.SectionBatchReorderIn, db: Session = Depends(get_db)):
    return unwrap_or_raise(attempt(CourseSectionService(db).reorder_sections, payload.section_ids))


@router.get("/sections/{section_id}", response_model=schema.CourseSectionOut)
def read_section(section_id: int, db: Session = Depends(get_db)):
    return unwrap_or_raise(attempt(CourseSectionService(db).find_section_by_id, section_id))


@router.get("/sections/{section_id}/children", response_model=List[schema.CourseSectionOut])
def list_child_sections(section_id: int, db: Session = Depends(get_db)):
    return unwrap_or_raise(attempt(CourseSectionService(db).find_child_sections, section_id))


@router.patch("/sections/{section_id}", response_model=schema.CourseSectionOut)
def update_section(section_id: int, payload: schema.CourseSectionUpdate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude_unset=True)
    return unwrap_or_raise(attempt(CourseSectionService(db).update_section, section_id, data))


@router.delete("/sections/{section_id}", response_model=schema.DeletedOut)
def delete_section(section_id: int, db: Session = Depends(get_db)):
    unwrap_or_raise(attempt(CourseSectionService(db).delete_section, section_id))
    return {"success": True, "id": section_id}


@router.get("/sections/{section_id}/ancestors", response_model=List[schema.CourseSectionOut])
def read_section_ancestors(section_id: int, db: Session = Depends(get_db)):
    return unwrap_or_raise(attempt(CourseSectionService(db).get_section_ancestors, section_id))


@router.post("/sections/{section_id}/reorder", response_model=schema.CourseSectionOut)
def reorder_section(section_id: int, payload: schema.SectionReorderIn, db: Session = Depends(get_db)):
    return unwrap_or_raise(
        attempt(CourseSectionService(db).reorder_section, section_id, payload.new_content_order)
    )


@router.post("/sections/{section_id}/nest", response_model=schema.CourseSectionOut)
def nest_section(section_id: int, payload: schema.SectionNestIn, db: Session = Depends(get_db)):
    return unwrap_or_raise(
        attempt(CourseSectionService(db).nest_section, section_id, payload.parent_section_id)
    )


@router.post("/sections/{section_id}/unnest", response_model=schema.CourseSectionOut)
def unnest_section(section_id: int, db: Session = Depends(get_db)):
    return unwrap_or_raise(attempt(CourseSectionService(db).unnest_section, section_id))


@router.post("/sections/{section_id}/move", response_model=schema.CourseSectionOut)
def move_section(section_id: int, payload: schema.SectionMoveIn, db: Session = Depends(get_db)):
    return unwrap_or_raise(
        attempt(
            CourseSectionService(db).move_section,
            section_id,
            payload.parent_section_id,
            payload.new_order,
        )
    )
