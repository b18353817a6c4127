from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Optional

from sqlalchemy.orm import Session

from courseware.crud.document_store import COURSE_ACTIVITY_MODULE_LINKS, COURSE_SECTIONS, COURSES, DocumentStore
from courseware.services.content_order import ContentKind, content_sort_key
from courseware.services.errors import ContentOrderViolationError, NotFoundError

logger = logging.getLogger(__name__)

SECTION_NODE = ContentKind.SECTION.value
MODULE_NODE = ContentKind.ACTIVITY_MODULE.value


def _node_sort_key(node: dict) -> tuple[float, int, int]:
    return content_sort_key(node["type"], node["id"], node["content_order"])


def _sort_and_renumber(nodes: list[dict]) -> list[dict]:
    nodes.sort(key=_node_sort_key)
    for index, node in enumerate(nodes):
        node["content_order"] = index
    return nodes


def assert_dense_content_order(nodes: list[dict], path: str = "root") -> None:
    """Raise :class:`ContentOrderViolationError` unless every level reads ``0..n-1``."""
    orders = [node["content_order"] for node in nodes]
    if orders != list(range(len(nodes))):
        raise ContentOrderViolationError(
            f"Content order at {path} is not dense and zero-based: {orders}"
        )
    for node in nodes:
        if node["type"] == SECTION_NODE:
            assert_dense_content_order(node["content"], f"{path}/section:{node['id']}")


def flatten_course_structure(structure: dict) -> list[dict]:
    """Module leaves in reading order, each with the ids of the sections containing it."""
    flat: list[dict] = []

    def _walk(nodes: list[dict], section_path: list[dict]) -> None:
        for node in nodes:
            if node["type"] == SECTION_NODE:
                _walk(node["content"], section_path + [{"id": node["id"], "title": node["title"]}])
                continue
            flat.append(
                {
                    "link_id": node["id"],
                    "module_id": node["module"]["id"],
                    "title": node["module"]["title"],
                    "type": node["module"]["type"],
                    "section_id": section_path[-1]["id"],
                    "section_path": section_path,
                }
            )

    _walk(structure["sections"], [])
    return flat


def render_course_structure_tree(
    structure: dict,
    course_title: Optional[str] = None,
    *,
    show_order: bool = True,
) -> str:
    """Plain text rendering of a course structure, one line per node."""
    lines = [course_title or f"Course {structure['course_id']}"]

    def _label(node: dict) -> str:
        if node["type"] == SECTION_NODE:
            label = node["title"]
        else:
            label = f"{node['module']['title']} [{node['module']['type']}]"
        if show_order:
            label += f" (content_order: {node['content_order']})"
        return label

    def _walk(nodes: list[dict], prefix: str) -> None:
        for index, node in enumerate(nodes):
            last = index == len(nodes) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{_label(node)}")
            if node["type"] == SECTION_NODE:
                _walk(node["content"], prefix + ("    " if last else "│   "))

    _walk(structure["sections"], "")
    return "\n".join(lines)


class CourseStructureService:
    """Read side of the content tree: nested structure and navigation."""

    def __init__(self, db: Session):
        self.db = db
        self.store = DocumentStore(db)

    def get_course_structure(self, course_id: int) -> dict[str, Any]:
        """Build the nested section/module tree of a course in two queries.

        Every level is sorted with the same comparator as the ordering engine
        and renumbered, then checked with :func:`assert_dense_content_order`.
        """
        self.store.find_by_id(COURSES, course_id)

        sections = self.store.find(COURSE_SECTIONS, where={"course_id": course_id}, sort="content_order")
        links = self.store.find(
            COURSE_ACTIVITY_MODULE_LINKS,
            where={"course_id": course_id},
            sort="content_order",
            load=("activity_module",),
        )

        nodes: dict[int, dict] = {
            section.id: {
                "id": section.id,
                "type": SECTION_NODE,
                "title": section.title,
                "description": section.description or "",
                "content_order": section.content_order,
                "content": [],
            }
            for section in sections
        }

        content_by_parent: dict[int, list[dict]] = defaultdict(list)
        for link in links:
            content_by_parent[link.section_id].append(
                {
                    "id": link.id,
                    "type": MODULE_NODE,
                    "content_order": link.content_order,
                    "module": {
                        "id": link.activity_module_id,
                        "title": link.display_name,
                        "type": link.activity_module.type.value,
                    },
                }
            )

        roots: list[dict] = []
        for section in sections:
            if section.parent_section_id is None:
                roots.append(nodes[section.id])
            elif section.parent_section_id in nodes:
                content_by_parent[section.parent_section_id].append(nodes[section.id])
            else:
                logger.warning(
                    "Section %s points at missing parent %s", section.id, section.parent_section_id
                )

        for section_id, node in nodes.items():
            node["content"] = _sort_and_renumber(content_by_parent.get(section_id, []))

        structure = {"course_id": course_id, "sections": _sort_and_renumber(roots)}
        assert_dense_content_order(structure["sections"])
        return structure

    def get_previous_next_module(self, course_id: int, link_id: int) -> dict[str, Optional[dict]]:
        flat = flatten_course_structure(self.get_course_structure(course_id))
        for index, leaf in enumerate(flat):
            if leaf["link_id"] == link_id:
                return {
                    "previous_module": flat[index - 1] if index > 0 else None,
                    "next_module": flat[index + 1] if index + 1 < len(flat) else None,
                }
        raise NotFoundError(f"Activity module link {link_id} not found in course {course_id}")
