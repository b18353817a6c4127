from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseware.api.v1.dependencies import get_db, unwrap_or_raise
from courseware.schemas.course import course_section_schema as schema
from courseware.services.course_section_service import CourseSectionService
from courseware.services.result import attempt

router = APIRouter()


@router.post(
    "/sections/{section_id}/activity-modules",
    response_model=schema.ActivityModuleLinkOut,
    status_code=status.HTTP_201_CREATED,
)
def add_activity_module(section_id: int, payload: schema.ActivityModuleLinkCreate, db: Session = Depends(get_db)):
    return unwrap_or_raise(
        attempt(
            CourseSectionService(db).add_activity_module_to_section,
            payload.activity_module_id,
            section_id,
            order=payload.order,
            settings=payload.settings,
        )
    )


@router.post("/sections/{section_id}/activity-modules/reorder", response_model=schema.ReorderResultOut)
def reorder_activity_modules(
    section_id: int,
    payload: schema.ActivityModuleLinkReorderIn,
    db: Session = Depends(get_db),
):
    return unwrap_or_raise(
        attempt(CourseSectionService(db).reorder_activity_modules_in_section, section_id, payload.link_ids)
    )


@router.delete("/activity-module-links/{link_id}", response_model=schema.DeletedOut)
def remove_activity_module(link_id: int, db: Session = Depends(get_db)):
    unwrap_or_raise(attempt(CourseSectionService(db).remove_activity_module_from_section, link_id))
    return {"success": True, "id": link_id}


@router.post("/activity-module-links/{link_id}/move", response_model=schema.ActivityModuleLinkOut)
def move_activity_module(link_id: int, payload: schema.ActivityModuleLinkMoveIn, db: Session = Depends(get_db)):
    return unwrap_or_raise(
        attempt(
            CourseSectionService(db).move_activity_module_between_sections,
            link_id,
            payload.section_id,
            payload.new_order,
        )
    )
