from __future__ import annotations

import enum
import logging
from collections import Counter
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from courseware.crud.document_store import (
    ACTIVITY_MODULES,
    COURSE_ACTIVITY_MODULE_LINKS,
    COURSE_SECTIONS,
    COURSES,
    DocumentStore,
)
from courseware.models.course.course_activity_module_link_model import CourseActivityModuleLink
from courseware.models.course.course_section_model import CourseSection
from courseware.services import cycle_guard
from courseware.services.content_order import (
    PENDING_CONTENT_ORDER,
    ContentKind,
    ContentRef,
    collection_for,
    load_sibling_group,
    parent_of,
    provisional_order_at,
    recalculate_content_order,
)
from courseware.services.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


class MoveLocation(str, enum.Enum):
    ABOVE = "above"
    BELOW = "below"
    INSIDE = "inside"


_UPDATABLE_SECTION_FIELDS = {"title", "description", "parent_section_id", "content_order"}


def _require(value: Any, message: str) -> None:
    if not value:
        raise InvalidArgumentError(message)


def _require_order(value: Optional[int], label: str = "Content order") -> None:
    if value is not None and value < 0:
        raise InvalidArgumentError(f"{label} must be non-negative")


class CourseSectionService:
    """Structural operations on the course content tree.

    Every mutation runs in one store transaction and leaves each touched
    sibling group dense (``0..n-1``).  Domain failures raise
    :class:`~courseware.services.errors.CourseStructureError` subclasses.
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = DocumentStore(db)

    # ------------------------------------------------------------------
    # Section CRUD
    # ------------------------------------------------------------------
    def create_section(
        self,
        course_id: int,
        title: str,
        description: str,
        parent_section_id: Optional[int] = None,
    ) -> CourseSection:
        _require(course_id, "Course ID is required")
        _require(title and title.strip(), "Section title is required")
        _require(description and description.strip(), "Section description is required")

        with self.store.transaction():
            self.store.find_by_id(COURSES, course_id)
            if parent_section_id is not None:
                parent = self.store.find_by_id(COURSE_SECTIONS, parent_section_id)
                if parent.course_id != course_id:
                    raise InvalidArgumentError("Parent section must belong to the same course")

            section = self.store.create(
                COURSE_SECTIONS,
                {
                    "course_id": course_id,
                    "title": title.strip(),
                    "description": description,
                    "parent_section_id": parent_section_id,
                    "content_order": PENDING_CONTENT_ORDER,
                },
            )
            self._recalculate(course_id, parent_section_id)

        logger.info(
            "Section %s created in course %s (parent=%s, order=%s)",
            section.id,
            course_id,
            parent_section_id,
            section.content_order,
        )
        return section

    def update_section(self, section_id: int, data: Mapping[str, Any]) -> CourseSection:
        """Apply a partial update; a parent change re-parents with full checks."""
        _require(section_id, "Section ID is required")
        unknown = set(data) - _UPDATABLE_SECTION_FIELDS
        if unknown:
            raise InvalidArgumentError(f"Cannot update section field(s): {', '.join(sorted(unknown))}")
        if "title" in data:
            _require(data["title"] and str(data["title"]).strip(), "Section title cannot be empty")
        _require_order(data.get("content_order"))

        with self.store.transaction():
            section = self.store.find_by_id(COURSE_SECTIONS, section_id)
            ref = ContentRef(ContentKind.SECTION, section.id)

            fields = {key: data[key] for key in ("title", "description") if key in data}
            if fields:
                self.store.update(COURSE_SECTIONS, section.id, fields)

            new_order = data.get("content_order")
            if "parent_section_id" in data and data["parent_section_id"] != section.parent_section_id:
                new_parent_id = data["parent_section_id"]
                order_key = (
                    PENDING_CONTENT_ORDER
                    if new_order is None
                    else provisional_order_at(
                        self.store, section.course_id, new_parent_id, new_order, exclude=ref
                    )
                )
                self._place_section(section, new_parent_id, order_key)
            elif new_order is not None:
                order_key = provisional_order_at(
                    self.store, section.course_id, section.parent_section_id, new_order, exclude=ref
                )
                self._recalculate(section.course_id, section.parent_section_id, {ref: order_key})

        logger.info("Section %s updated (%s)", section_id, ", ".join(sorted(data)) or "no fields")
        return section

    def find_section_by_id(self, section_id: int) -> CourseSection:
        _require(section_id, "Section ID is required")
        return self.store.find_by_id(COURSE_SECTIONS, section_id)

    def delete_section(self, section_id: int) -> CourseSection:
        _require(section_id, "Section ID is required")

        with self.store.transaction():
            section = self.store.find_by_id(COURSE_SECTIONS, section_id)

            if self.store.count(COURSE_SECTIONS, where={"parent_section_id": section.id}) > 0:
                raise InvalidArgumentError(
                    "Cannot delete section with child sections. Delete children first."
                )
            if self.store.count(COURSE_ACTIVITY_MODULE_LINKS, where={"section_id": section.id}) > 0:
                raise InvalidArgumentError(
                    "Cannot delete section with activity modules. Remove modules first."
                )
            if self.store.count(COURSE_SECTIONS, where={"course_id": section.course_id}) <= 1:
                raise InvalidArgumentError(
                    "Cannot delete the last section in a course. Every course must have at least one section."
                )

            course_id, parent_id = section.course_id, section.parent_section_id
            self.store.delete(COURSE_SECTIONS, section.id)
            self._recalculate(course_id, parent_id)

        logger.info("Section %s deleted from course %s", section_id, course_id)
        return section

    # ------------------------------------------------------------------
    # Section tree reads
    # ------------------------------------------------------------------
    def find_sections_by_course(self, course_id: int) -> list[CourseSection]:
        _require(course_id, "Course ID is required")
        return self.store.find(COURSE_SECTIONS, where={"course_id": course_id}, sort="content_order")

    def find_root_sections(self, course_id: int) -> list[CourseSection]:
        _require(course_id, "Course ID is required")
        return self.store.find(
            COURSE_SECTIONS,
            where={"course_id": course_id, "parent_section_id": None},
            sort="content_order",
        )

    def find_child_sections(self, parent_section_id: int) -> list[CourseSection]:
        _require(parent_section_id, "Parent section ID is required")
        self.store.find_by_id(COURSE_SECTIONS, parent_section_id)
        return self.store.find(
            COURSE_SECTIONS,
            where={"parent_section_id": parent_section_id},
            sort="content_order",
        )

    def get_section_tree(self, course_id: int) -> list[dict]:
        """Sections-only tree with the number of modules directly in each section."""
        _require(course_id, "Course ID is required")
        sections = self.find_sections_by_course(course_id)
        module_counts = Counter(
            link.section_id
            for link in self.store.find(COURSE_ACTIVITY_MODULE_LINKS, where={"course_id": course_id})
        )

        nodes = {
            section.id: {
                "id": section.id,
                "title": section.title,
                "description": section.description or "",
                "parent_section_id": section.parent_section_id,
                "content_order": section.content_order,
                "course_id": section.course_id,
                "activity_modules_count": module_counts.get(section.id, 0),
                "child_sections": [],
            }
            for section in sections
        }

        roots: list[dict] = []
        # ``sections`` is sorted by order, so children are appended in order too.
        for section in sections:
            node = nodes[section.id]
            parent = nodes.get(section.parent_section_id) if section.parent_section_id else None
            if parent is None:
                roots.append(node)
            else:
                parent["child_sections"].append(node)
        return roots

    def get_section_ancestors(self, section_id: int) -> list[CourseSection]:
        _require(section_id, "Section ID is required")
        return cycle_guard.get_ancestors(self.store, section_id)

    def get_section_depth(self, section_id: int) -> int:
        _require(section_id, "Section ID is required")
        return cycle_guard.get_depth(self.store, section_id)

    def get_section_modules_count(self, section_id: int) -> int:
        _require(section_id, "Section ID is required")
        return self.store.count(COURSE_ACTIVITY_MODULE_LINKS, where={"section_id": section_id})

    def validate_no_circular_reference(self, section_id: int, new_parent_section_id: int) -> bool:
        _require(section_id, "Section ID is required")
        _require(new_parent_section_id, "New parent section ID is required")
        return not cycle_guard.would_create_cycle(self.store, section_id, new_parent_section_id)

    # ------------------------------------------------------------------
    # Ordering and nesting
    # ------------------------------------------------------------------
    def reorder_section(self, section_id: int, new_content_order: int) -> CourseSection:
        """Place the section at index *new_content_order* among its siblings."""
        _require(section_id, "Section ID is required")
        _require_order(new_content_order)
        return self.update_section(section_id, {"content_order": new_content_order})

    def reorder_sections(self, section_ids: Sequence[int]) -> dict:
        """Move the listed siblings, in the given order, after the other members of their group."""
        _require(section_ids, "Section IDs are required")
        if len(set(section_ids)) != len(section_ids):
            raise InvalidArgumentError("Section IDs must be unique")

        with self.store.transaction():
            sections = [self.store.find_by_id(COURSE_SECTIONS, section_id) for section_id in section_ids]
            groups = {(section.course_id, section.parent_section_id) for section in sections}
            if len(groups) != 1:
                raise InvalidArgumentError("Sections to reorder must share the same parent")

            course_id, parent_id = groups.pop()
            provisional = {
                ContentRef(ContentKind.SECTION, section.id): PENDING_CONTENT_ORDER + index
                for index, section in enumerate(sections)
            }
            self._recalculate(course_id, parent_id, provisional)

        logger.info("Reordered %s section(s) under parent %s", len(section_ids), parent_id)
        return {"success": True, "reordered_count": len(section_ids)}

    def nest_section(self, section_id: int, new_parent_section_id: int) -> CourseSection:
        _require(section_id, "Section ID is required")
        _require(new_parent_section_id, "New parent section ID is required")

        with self.store.transaction():
            section = self.store.find_by_id(COURSE_SECTIONS, section_id)
            self._place_section(section, new_parent_section_id, PENDING_CONTENT_ORDER)

        logger.info("Section %s nested under %s", section_id, new_parent_section_id)
        return section

    def unnest_section(self, section_id: int) -> CourseSection:
        _require(section_id, "Section ID is required")

        with self.store.transaction():
            section = self.store.find_by_id(COURSE_SECTIONS, section_id)
            self._place_section(section, None, PENDING_CONTENT_ORDER)

        logger.info("Section %s moved to the root level", section_id)
        return section

    def move_section(
        self,
        section_id: int,
        new_parent_section_id: Optional[int],
        new_order: int,
    ) -> CourseSection:
        _require(section_id, "Section ID is required")
        _require_order(new_order, "Order")

        with self.store.transaction():
            section = self.store.find_by_id(COURSE_SECTIONS, section_id)
            order_key = provisional_order_at(
                self.store,
                section.course_id,
                new_parent_section_id,
                new_order,
                exclude=ContentRef(ContentKind.SECTION, section.id),
            )
            self._place_section(section, new_parent_section_id, order_key)

        logger.info("Section %s moved under %s at %s", section_id, new_parent_section_id, new_order)
        return section

    # ------------------------------------------------------------------
    # Activity module links
    # ------------------------------------------------------------------
    def add_activity_module_to_section(
        self,
        activity_module_id: int,
        section_id: int,
        order: Optional[int] = None,
        settings: Optional[dict] = None,
    ) -> CourseActivityModuleLink:
        _require(activity_module_id, "Activity module ID is required")
        _require(section_id, "Section ID is required")
        _require_order(order, "Order")

        with self.store.transaction():
            self.store.find_by_id(ACTIVITY_MODULES, activity_module_id)
            section = self.store.find_by_id(COURSE_SECTIONS, section_id)
            self._ensure_not_linked(activity_module_id, section.id)

            link = self.store.create(
                COURSE_ACTIVITY_MODULE_LINKS,
                {
                    "course_id": section.course_id,
                    "activity_module_id": activity_module_id,
                    "section_id": section.id,
                    "content_order": PENDING_CONTENT_ORDER,
                    "settings": settings,
                },
            )
            provisional = None
            if order is not None:
                ref = ContentRef(ContentKind.ACTIVITY_MODULE, link.id)
                provisional = {
                    ref: provisional_order_at(self.store, section.course_id, section.id, order, exclude=ref)
                }
            self._recalculate(section.course_id, section.id, provisional)

        logger.info("Activity module %s linked to section %s (link %s)", activity_module_id, section_id, link.id)
        return link

    def remove_activity_module_from_section(self, link_id: int) -> CourseActivityModuleLink:
        _require(link_id, "Link ID is required")

        with self.store.transaction():
            link = self.store.find_by_id(COURSE_ACTIVITY_MODULE_LINKS, link_id)
            course_id, section_id = link.course_id, link.section_id
            self.store.delete(COURSE_ACTIVITY_MODULE_LINKS, link.id)
            self._recalculate(course_id, section_id)

        logger.info("Link %s removed from section %s", link_id, section_id)
        return link

    def reorder_activity_modules_in_section(self, section_id: int, link_ids: Sequence[int]) -> dict:
        """Permute the listed links among the positions they already occupy.

        Child sections interleaved with the links keep their positions.
        """
        _require(section_id, "Section ID is required")
        _require(link_ids, "Link IDs are required")
        if len(set(link_ids)) != len(link_ids):
            raise InvalidArgumentError("Link IDs must be unique")

        with self.store.transaction():
            section = self.store.find_by_id(COURSE_SECTIONS, section_id)
            entries = load_sibling_group(self.store, section.course_id, section.id)
            links = {
                entry.id: entry for entry in entries if entry.kind is ContentKind.ACTIVITY_MODULE
            }
            missing = [link_id for link_id in link_ids if link_id not in links]
            if missing:
                raise InvalidArgumentError(
                    f"Link(s) {', '.join(map(str, missing))} do not belong to section {section_id}"
                )

            slots = sorted(links[link_id].content_order for link_id in link_ids)
            provisional = {
                ContentRef(ContentKind.ACTIVITY_MODULE, link_id): slot
                for link_id, slot in zip(link_ids, slots)
            }
            self._recalculate(section.course_id, section.id, provisional)

        logger.info("Reordered %s link(s) in section %s", len(link_ids), section_id)
        return {"success": True, "reordered_count": len(link_ids)}

    def move_activity_module_between_sections(
        self,
        link_id: int,
        new_section_id: int,
        new_order: Optional[int] = None,
    ) -> CourseActivityModuleLink:
        _require(link_id, "Link ID is required")
        _require(new_section_id, "New section ID is required")
        _require_order(new_order, "Order")

        with self.store.transaction():
            link = self.store.find_by_id(COURSE_ACTIVITY_MODULE_LINKS, link_id)
            order_key: float = PENDING_CONTENT_ORDER
            if new_order is not None:
                order_key = provisional_order_at(
                    self.store,
                    link.course_id,
                    new_section_id,
                    new_order,
                    exclude=ContentRef(ContentKind.ACTIVITY_MODULE, link.id),
                )
            self._place_link(link, new_section_id, order_key)

        logger.info("Link %s moved to section %s", link_id, new_section_id)
        return link

    # ------------------------------------------------------------------
    # Generalized move
    # ------------------------------------------------------------------
    def general_move(self, source: ContentRef, target: ContentRef, location: MoveLocation | str) -> Any:
        """Move a section or link above, below or inside *target*.

        The item gets a provisional key half a slot before or after the target
        (or the append sentinel for ``inside``) and both touched groups are
        recalculated.
        """
        _require(source.id, "Source ID is required")
        _require(target.id, "Target ID is required")
        try:
            location = MoveLocation(location)
        except ValueError:
            raise InvalidArgumentError(f"Unknown move location '{location}'") from None

        if location is MoveLocation.INSIDE and target.kind is ContentKind.ACTIVITY_MODULE:
            raise InvalidArgumentError("Cannot move items inside an activity module")

        with self.store.transaction():
            source_item = self.store.find_by_id(collection_for(source.kind), source.id)
            target_item = self.store.find_by_id(collection_for(target.kind), target.id)

            if source_item.course_id != target_item.course_id:
                raise InvalidArgumentError("Source and target must belong to the same course")

            if source == target and location is not MoveLocation.INSIDE:
                return source_item

            if location is MoveLocation.INSIDE:
                new_parent_id: Optional[int] = target_item.id
                order_key: float = PENDING_CONTENT_ORDER
            else:
                new_parent_id = parent_of(target.kind, target_item)
                offset = -0.5 if location is MoveLocation.ABOVE else 0.5
                order_key = target_item.content_order + offset

            if source.kind is ContentKind.SECTION:
                cycle_guard.ensure_no_cycle(self.store, source_item.id, new_parent_id)
                self._place_section(source_item, new_parent_id, order_key)
            else:
                if new_parent_id is None:
                    raise InvalidArgumentError("Activity module must be assigned to a section")
                self._place_link(source_item, new_parent_id, order_key)

        logger.info(
            "Moved %s %s %s %s %s",
            source.kind.value,
            source.id,
            location.value,
            target.kind.value,
            target.id,
        )
        return source_item

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _recalculate(
        self,
        course_id: int,
        parent_section_id: Optional[int],
        provisional: Mapping[ContentRef, float] | None = None,
    ) -> None:
        recalculate_content_order(self.store, course_id, parent_section_id, provisional)

    def _validate_new_parent(self, section: CourseSection, new_parent_id: int) -> None:
        parent = self.store.find_by_id(COURSE_SECTIONS, new_parent_id)
        if parent.course_id != section.course_id:
            raise InvalidArgumentError("Section and parent section must belong to the same course")
        if parent.id == section.id:
            raise InvalidArgumentError("Section cannot be its own parent")
        cycle_guard.ensure_no_cycle(self.store, section.id, parent.id)

    def _place_section(self, section: CourseSection, new_parent_id: Optional[int], order_key: float) -> None:
        """Re-parent *section* (if needed) and fold it in at *order_key*."""
        if new_parent_id is not None:
            self._validate_new_parent(section, new_parent_id)

        old_parent_id = section.parent_section_id
        if old_parent_id != new_parent_id:
            self.store.update(COURSE_SECTIONS, section.id, {"parent_section_id": new_parent_id})
            self._recalculate(section.course_id, old_parent_id)

        self._recalculate(
            section.course_id,
            new_parent_id,
            {ContentRef(ContentKind.SECTION, section.id): order_key},
        )

    def _place_link(self, link: CourseActivityModuleLink, new_section_id: int, order_key: float) -> None:
        old_section_id = link.section_id
        if old_section_id != new_section_id:
            new_section = self.store.find_by_id(COURSE_SECTIONS, new_section_id)
            if new_section.course_id != link.course_id:
                raise InvalidArgumentError(
                    "Activity module and new section must belong to the same course"
                )
            self._ensure_not_linked(link.activity_module_id, new_section.id)
            self.store.update(COURSE_ACTIVITY_MODULE_LINKS, link.id, {"section_id": new_section.id})
            self._recalculate(link.course_id, old_section_id)

        self._recalculate(
            link.course_id,
            new_section_id,
            {ContentRef(ContentKind.ACTIVITY_MODULE, link.id): order_key},
        )

    def _ensure_not_linked(self, activity_module_id: int, section_id: int) -> None:
        existing = self.store.count(
            COURSE_ACTIVITY_MODULE_LINKS,
            where={"activity_module_id": activity_module_id, "section_id": section_id},
        )
        if existing:
            raise InvalidArgumentError("Activity module is already linked to this section")
