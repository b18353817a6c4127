"""Pydantic schemas for courses and their content tree."""

from . import course_schema, course_section_schema, course_structure_schema

__all__ = [
    "course_schema",
    "course_section_schema",
    "course_structure_schema",
]
