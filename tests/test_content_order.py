from __future__ import annotations

import pytest

from courseware.crud.document_store import COURSE_ACTIVITY_MODULE_LINKS, COURSE_SECTIONS, DocumentStore
from courseware.models.course.course_activity_module_link_model import CourseActivityModuleLink
from courseware.models.course.course_section_model import CourseSection
from courseware.services.content_order import (
    PENDING_CONTENT_ORDER,
    ContentKind,
    ContentRef,
    collection_for,
    content_sort_key,
    is_dense,
    load_sibling_group,
    provisional_order_at,
    recalculate_content_order,
)
from tests.utils import create_activity_module, create_course, group_orders


class CountingStore(DocumentStore):
    def __init__(self, db):
        super().__init__(db)
        self.updates = 0

    def update(self, collection, record_id, data):
        self.updates += 1
        return super().update(collection, record_id, data)


def raw_section(db, course, order, parent=None, title="Raw"):
    section = CourseSection(
        course_id=course.id,
        title=title,
        description="raw",
        parent_section_id=parent.id if parent is not None else None,
        content_order=order,
    )
    db.add(section)
    db.commit()
    return section


def raw_link(db, course, section, order):
    module = create_activity_module(db, f"Module {order}")
    link = CourseActivityModuleLink(
        course_id=course.id,
        activity_module_id=module.id,
        section_id=section.id,
        content_order=order,
    )
    db.add(link)
    db.commit()
    return link


@pytest.fixture()
def course(db_session):
    return create_course(db_session, title="Ordering")


def test_sort_key_puts_sections_first_then_lowest_id():
    keys = sorted(
        [
            content_sort_key(ContentKind.ACTIVITY_MODULE, 1, 0),
            content_sort_key("section", 9, 0),
            content_sort_key("section", 3, 0),
            content_sort_key("section", 1, 1),
        ]
    )
    assert keys == [(0, 0, 3), (0, 0, 9), (0, 1, 1), (1, 0, 1)]


def test_content_ref_accepts_plain_strings():
    assert ContentRef("section", 4) == ContentRef(ContentKind.SECTION, 4)
    assert {ContentRef("activity-module", 2): 1}[ContentRef(ContentKind.ACTIVITY_MODULE, 2)] == 1


def test_collection_for_kind():
    assert collection_for(ContentKind.SECTION) == COURSE_SECTIONS
    assert collection_for("activity-module") == COURSE_ACTIVITY_MODULE_LINKS


def test_recalculate_densifies_mixed_group(db_session, course):
    parent = raw_section(db_session, course, 0, title="Parent")
    x = raw_section(db_session, course, 3, parent=parent, title="X")
    link = raw_link(db_session, course, parent, 1)
    y = raw_section(db_session, course, 1, parent=parent, title="Y")

    entries = recalculate_content_order(DocumentStore(db_session), course.id, parent.id)

    assert [(entry.kind.value, entry.id) for entry in entries] == [
        ("section", y.id),
        ("activity-module", link.id),
        ("section", x.id),
    ]
    assert is_dense(entries)
    assert group_orders(db_session, course, parent) == [
        ("section", y.id, 0),
        ("activity-module", link.id, 1),
        ("section", x.id, 2),
    ]


def test_recalculate_is_idempotent(db_session, course):
    raw_section(db_session, course, 7)
    raw_section(db_session, course, 7)
    raw_section(db_session, course, 2)

    store = CountingStore(db_session)
    recalculate_content_order(store, course.id, None)
    first_pass = store.updates
    first_orders = group_orders(db_session, course)

    recalculate_content_order(store, course.id, None)

    assert first_pass > 0
    assert store.updates == first_pass
    assert group_orders(db_session, course) == first_orders


def test_recalculate_on_dense_group_writes_nothing(db_session, course):
    for order in range(3):
        raw_section(db_session, course, order)

    store = CountingStore(db_session)
    recalculate_content_order(store, course.id, None)

    assert store.updates == 0


def test_recalculate_root_is_scoped_to_course(db_session, course):
    other = create_course(db_session, title="Other")
    mine = raw_section(db_session, course, 4)
    theirs = raw_section(db_session, other, 4)

    recalculate_content_order(DocumentStore(db_session), course.id, None)

    db_session.expire_all()
    assert db_session.get(CourseSection, mine.id).content_order == 0
    assert db_session.get(CourseSection, theirs.id).content_order == 4


def test_provisional_orders_override_stored_values(db_session, course):
    a = raw_section(db_session, course, 0)
    b = raw_section(db_session, course, 1)
    c = raw_section(db_session, course, 2)

    recalculate_content_order(
        DocumentStore(db_session),
        course.id,
        None,
        {ContentRef("section", a.id): PENDING_CONTENT_ORDER, ContentRef("section", c.id): 1.5},
    )

    assert [item_id for _, item_id, _ in group_orders(db_session, course)] == [b.id, c.id, a.id]


def test_provisional_order_at(db_session, course):
    a = raw_section(db_session, course, 0)
    b = raw_section(db_session, course, 1)
    store = DocumentStore(db_session)

    assert provisional_order_at(store, course.id, None, 0) == -0.5
    assert provisional_order_at(store, course.id, None, 1) == 0.5
    assert provisional_order_at(store, course.id, None, 2) == PENDING_CONTENT_ORDER
    # The moved item itself is not a sibling.
    assert provisional_order_at(store, course.id, None, 1, exclude=ContentRef("section", a.id)) == PENDING_CONTENT_ORDER
    assert provisional_order_at(store, course.id, None, 0, exclude=ContentRef("section", b.id)) == -0.5


def test_root_group_never_contains_links(db_session, course):
    section = raw_section(db_session, course, 0)
    raw_link(db_session, course, section, 0)

    entries = load_sibling_group(DocumentStore(db_session), course.id, None)

    assert [entry.kind for entry in entries] == [ContentKind.SECTION]
