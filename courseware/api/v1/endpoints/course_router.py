from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from courseware.api.v1.dependencies import get_db, unwrap_or_raise
from courseware.crud import course_crud
from courseware.schemas.course import course_schema
from courseware.services.result import attempt

router = APIRouter()


@router.post("/courses", response_model=course_schema.CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(payload: course_schema.CourseCreate, db: Session = Depends(get_db)):
    return unwrap_or_raise(
        attempt(
            course_crud.create_course,
            db,
            title=payload.title,
            description=payload.description,
            slug=payload.slug,
            status=payload.status,
        )
    )


@router.get("/courses", response_model=List[course_schema.CourseOut])
def list_courses(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return course_crud.list_courses(db, skip=skip, limit=limit)


@router.get("/courses/{course_id}", response_model=course_schema.CourseOut)
def read_course(course_id: int, db: Session = Depends(get_db)):
    return unwrap_or_raise(attempt(course_crud.get_course, db, course_id))


@router.post(
    "/activity-modules",
    response_model=course_schema.ActivityModuleOut,
    status_code=status.HTTP_201_CREATED,
)
def create_activity_module(payload: course_schema.ActivityModuleCreate, db: Session = Depends(get_db)):
    return unwrap_or_raise(
        attempt(course_crud.create_activity_module, db, title=payload.title, type=payload.type)
    )
