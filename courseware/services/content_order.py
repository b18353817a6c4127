"""Dense ordering of sibling groups in the course content tree.

A sibling group is every section and activity module link sharing the same
direct parent inside one course (the parent being a section id, or ``None``
for the root level).  Sections and links of a group share one ``content_order``
sequence which must always read ``0..n-1``.

Mutations never compute exact slots.  They give the moved item a provisional
sort key (a fractional neighbour offset, or :data:`PENDING_CONTENT_ORDER` to
append) and call :func:`recalculate_content_order`, which re-flattens the whole
group to dense integers.  Provisional keys live in memory only; the column
always stores integers.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from courseware.crud.document_store import (
    COURSE_ACTIVITY_MODULE_LINKS,
    COURSE_SECTIONS,
    DocumentStore,
)

logger = logging.getLogger(__name__)

# Sorts after any real position; folded into the group by recalculation.
PENDING_CONTENT_ORDER = 999999


class ContentKind(str, enum.Enum):
    SECTION = "section"
    ACTIVITY_MODULE = "activity-module"


# Equal orders: sections before activity module links, then lowest id first.
_KIND_RANK = {ContentKind.SECTION: 0, ContentKind.ACTIVITY_MODULE: 1}

_COLLECTION_BY_KIND = {
    ContentKind.SECTION: COURSE_SECTIONS,
    ContentKind.ACTIVITY_MODULE: COURSE_ACTIVITY_MODULE_LINKS,
}


def collection_for(kind: ContentKind) -> str:
    return _COLLECTION_BY_KIND[ContentKind(kind)]


@dataclass(frozen=True, slots=True)
class ContentRef:
    """Points at one section or one activity module link."""

    kind: ContentKind
    id: int

    def __post_init__(self) -> None:
        # Plain strings and enum members must hash alike in provisional maps.
        object.__setattr__(self, "kind", ContentKind(self.kind))


@dataclass(slots=True)
class ContentEntry:
    kind: ContentKind
    id: int
    content_order: float
    record: Any

    @property
    def ref(self) -> ContentRef:
        return ContentRef(self.kind, self.id)


def content_sort_key(kind: ContentKind, item_id: int, content_order: float) -> tuple[float, int, int]:
    """The single comparator used for every sibling list."""
    return (content_order, _KIND_RANK[ContentKind(kind)], item_id)


def entry_sort_key(entry: ContentEntry) -> tuple[float, int, int]:
    return content_sort_key(entry.kind, entry.id, entry.content_order)


def parent_of(kind: ContentKind, record: Any) -> Optional[int]:
    """Return the parent section id of a section or link record."""
    if ContentKind(kind) is ContentKind.SECTION:
        return record.parent_section_id
    return record.section_id


def load_sibling_group(
    store: DocumentStore,
    course_id: int,
    parent_section_id: Optional[int],
) -> list[ContentEntry]:
    """Return the group's entries sorted by their stored order."""
    sections = store.find(
        COURSE_SECTIONS,
        where={"course_id": course_id, "parent_section_id": parent_section_id},
    )
    # Links always live inside a section, the root level only holds sections.
    links = (
        []
        if parent_section_id is None
        else store.find(
            COURSE_ACTIVITY_MODULE_LINKS,
            where={"course_id": course_id, "section_id": parent_section_id},
        )
    )

    entries = [
        ContentEntry(ContentKind.SECTION, section.id, section.content_order, section)
        for section in sections
    ]
    entries.extend(
        ContentEntry(ContentKind.ACTIVITY_MODULE, link.id, link.content_order, link)
        for link in links
    )
    entries.sort(key=entry_sort_key)
    return entries


def provisional_order_at(
    store: DocumentStore,
    course_id: int,
    parent_section_id: Optional[int],
    index: int,
    *,
    exclude: ContentRef | None = None,
) -> float:
    """Sort key that lands an item at *index* of the group once recalculated.

    *exclude* is the item being moved; it does not count as a sibling.  An
    index past the end appends.
    """
    siblings = [
        entry
        for entry in load_sibling_group(store, course_id, parent_section_id)
        if entry.ref != exclude
    ]
    if index >= len(siblings):
        return PENDING_CONTENT_ORDER
    return siblings[index].content_order - 0.5


def recalculate_content_order(
    store: DocumentStore,
    course_id: int,
    parent_section_id: Optional[int],
    provisional: Mapping[ContentRef, float] | None = None,
) -> list[ContentEntry]:
    """Rewrite the group's orders to ``0..n-1``.

    *provisional* overrides the stored order of the listed items for sorting.
    The full assignment is computed before any write, and only rows whose
    value changes are updated, so a dense group costs no writes.
    """
    entries = load_sibling_group(store, course_id, parent_section_id)
    if provisional:
        for entry in entries:
            if entry.ref in provisional:
                entry.content_order = provisional[entry.ref]
        entries.sort(key=entry_sort_key)

    assignment = [(entry, index) for index, entry in enumerate(entries) if entry.record.content_order != index]
    for entry, index in assignment:
        store.update(collection_for(entry.kind), entry.id, {"content_order": index})
    for index, entry in enumerate(entries):
        entry.content_order = index

    logger.debug(
        "Recalculated content order for course %s parent %s: %s item(s), %s write(s)",
        course_id,
        parent_section_id if parent_section_id is not None else "root",
        len(entries),
        len(assignment),
    )
    return entries


def is_dense(entries: list[ContentEntry]) -> bool:
    return sorted(entry.record.content_order for entry in entries) == list(range(len(entries)))
