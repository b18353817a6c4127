from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from courseware.api.v1.dependencies import get_db, unwrap_or_raise
from courseware.crud import course_crud
from courseware.schemas.course import course_structure_schema as schema
from courseware.services.content_order import ContentRef, parent_of
from courseware.services.course_section_service import CourseSectionService
from courseware.services.course_structure_service import CourseStructureService, render_course_structure_tree
from courseware.services.result import attempt

router = APIRouter()


@router.get("/courses/{course_id}/structure", response_model=schema.CourseStructureOut)
def read_course_structure(course_id: int, db: Session = Depends(get_db)):
    return unwrap_or_raise(attempt(CourseStructureService(db).get_course_structure, course_id))


@router.get("/courses/{course_id}/structure/tree", response_class=PlainTextResponse)
def read_course_structure_tree(course_id: int, show_order: bool = True, db: Session = Depends(get_db)):
    course = unwrap_or_raise(attempt(course_crud.get_course, db, course_id))
    structure = unwrap_or_raise(attempt(CourseStructureService(db).get_course_structure, course_id))
    return render_course_structure_tree(structure, course.title, show_order=show_order)


@router.get(
    "/courses/{course_id}/activity-module-links/{link_id}/navigation",
    response_model=schema.ModuleNavigationOut,
)
def read_module_navigation(course_id: int, link_id: int, db: Session = Depends(get_db)):
    return unwrap_or_raise(
        attempt(CourseStructureService(db).get_previous_next_module, course_id, link_id)
    )


@router.post("/courses/structure/move", response_model=schema.GeneralMoveOut)
def general_move(payload: schema.GeneralMoveIn, db: Session = Depends(get_db)):
    source = ContentRef(payload.source.kind, payload.source.id)
    target = ContentRef(payload.target.kind, payload.target.id)
    record = unwrap_or_raise(
        attempt(CourseSectionService(db).general_move, source, target, payload.location)
    )
    return {
        "kind": source.kind,
        "id": record.id,
        "parent_section_id": parent_of(source.kind, record),
        "content_order": record.content_order,
    }
