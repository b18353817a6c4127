from __future__ import annotations

import logging
from typing import Any, Optional

from courseware.crud.document_store import COURSE_SECTIONS, DocumentStore
from courseware.services.errors import CircularReferenceError

logger = logging.getLogger(__name__)


def _walk_limit(store: DocumentStore, section: Any) -> int:
    # A sound chain can never be longer than the number of sections in the course.
    return store.count(COURSE_SECTIONS, where={"course_id": section.course_id})


def would_create_cycle(store: DocumentStore, section_id: int, proposed_parent_id: Optional[int]) -> bool:
    """Return True if parenting *section_id* under *proposed_parent_id* makes it its own ancestor."""
    if proposed_parent_id is None:
        return False

    current = store.find_by_id(COURSE_SECTIONS, proposed_parent_id)
    limit = _walk_limit(store, current)
    steps = 0
    while True:
        if current.id == section_id:
            return True
        if current.parent_section_id is None:
            return False
        steps += 1
        if steps > limit:
            logger.error("Parent chain of section %s does not terminate", proposed_parent_id)
            raise CircularReferenceError(
                f"Parent chain of section {proposed_parent_id} already contains a cycle"
            )
        current = store.find_by_id(COURSE_SECTIONS, current.parent_section_id)


def ensure_no_cycle(store: DocumentStore, section_id: int, proposed_parent_id: Optional[int]) -> None:
    if would_create_cycle(store, section_id, proposed_parent_id):
        logger.warning(
            "Rejected parent %s for section %s: circular reference", proposed_parent_id, section_id
        )
        raise CircularReferenceError(
            f"Cannot place section {section_id} under section {proposed_parent_id}: "
            "would create circular reference"
        )


def get_ancestors(store: DocumentStore, section_id: int) -> list[Any]:
    """Return the chain from the root section down to *section_id* (inclusive)."""
    section = store.find_by_id(COURSE_SECTIONS, section_id)
    limit = _walk_limit(store, section)
    chain = [section]
    while section.parent_section_id is not None:
        if len(chain) > limit:
            raise CircularReferenceError(f"Parent chain of section {section_id} contains a cycle")
        section = store.find_by_id(COURSE_SECTIONS, section.parent_section_id)
        chain.append(section)
    chain.reverse()
    return chain


def get_depth(store: DocumentStore, section_id: int) -> int:
    """0 for a root section, 1 for its children, and so on."""
    return len(get_ancestors(store, section_id)) - 1
