from fastapi import APIRouter

from .endpoints import (
    activity_module_link_router,
    course_router,
    course_section_router,
    course_structure_router,
)

api_router = APIRouter()

api_router.include_router(course_router.router, tags=["Courses"])
api_router.include_router(course_section_router.router, tags=["Course Sections"])
api_router.include_router(activity_module_link_router.router, tags=["Activity Module Links"])
api_router.include_router(course_structure_router.router, tags=["Course Structure"])
