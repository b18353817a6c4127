from __future__ import annotations

import pytest

from courseware.crud.document_store import DocumentStore
from courseware.models.course.course_section_model import CourseSection
from courseware.services import cycle_guard
from courseware.services.course_section_service import CourseSectionService
from courseware.services.errors import CircularReferenceError, InvalidArgumentError, NotFoundError
from tests.utils import create_course, create_section, link_module


@pytest.fixture()
def course(db_session):
    return create_course(db_session, title="Trees")


@pytest.fixture()
def chain(db_session, course):
    """root -> middle -> leaf, plus an unrelated root section."""
    root = create_section(db_session, course, "Root")
    middle = create_section(db_session, course, "Middle", parent=root)
    leaf = create_section(db_session, course, "Leaf", parent=middle)
    other = create_section(db_session, course, "Other")
    return root, middle, leaf, other


def test_no_parent_never_cycles(db_session, chain):
    root, *_ = chain
    assert cycle_guard.would_create_cycle(DocumentStore(db_session), root.id, None) is False


def test_descendant_as_parent_is_a_cycle(db_session, chain):
    root, middle, leaf, other = chain
    store = DocumentStore(db_session)

    assert cycle_guard.would_create_cycle(store, root.id, leaf.id) is True
    assert cycle_guard.would_create_cycle(store, middle.id, leaf.id) is True
    assert cycle_guard.would_create_cycle(store, root.id, root.id) is True
    assert cycle_guard.would_create_cycle(store, leaf.id, other.id) is False
    assert cycle_guard.would_create_cycle(store, other.id, leaf.id) is False


def test_ensure_no_cycle_raises(db_session, chain):
    root, _, leaf, _ = chain
    with pytest.raises(CircularReferenceError) as exc:
        cycle_guard.ensure_no_cycle(DocumentStore(db_session), root.id, leaf.id)

    assert isinstance(exc.value, InvalidArgumentError)
    assert exc.value.code == "circular_reference"


def test_corrupt_chain_is_detected(db_session, course):
    a = create_section(db_session, course, "A")
    b = create_section(db_session, course, "B", parent=a)
    # Write a loop directly, behind the service's back.
    db_session.get(CourseSection, a.id).parent_section_id = b.id
    db_session.commit()
    c = create_section(db_session, course, "C")

    with pytest.raises(CircularReferenceError):
        cycle_guard.would_create_cycle(DocumentStore(db_session), c.id, a.id)
    with pytest.raises(CircularReferenceError):
        cycle_guard.get_ancestors(DocumentStore(db_session), a.id)


def test_ancestors_and_depth(db_session, chain):
    root, middle, leaf, other = chain
    service = CourseSectionService(db_session)

    assert [s.id for s in service.get_section_ancestors(leaf.id)] == [root.id, middle.id, leaf.id]
    assert service.get_section_depth(root.id) == 0
    assert service.get_section_depth(leaf.id) == 2
    assert service.get_section_depth(other.id) == 0


def test_validate_no_circular_reference(db_session, chain):
    root, middle, leaf, other = chain
    service = CourseSectionService(db_session)

    assert service.validate_no_circular_reference(leaf.id, other.id) is True
    assert service.validate_no_circular_reference(root.id, middle.id) is False


def test_finders_and_section_tree(db_session, course, chain):
    root, middle, leaf, other = chain
    link_module(db_session, middle, "Notes")
    link_module(db_session, middle, "Quiz")
    service = CourseSectionService(db_session)

    assert [s.id for s in service.find_root_sections(course.id)] == [root.id, other.id]
    assert [s.id for s in service.find_child_sections(root.id)] == [middle.id]
    assert service.find_child_sections(leaf.id) == []
    assert len(service.find_sections_by_course(course.id)) == 4
    assert service.get_section_modules_count(middle.id) == 2

    tree = service.get_section_tree(course.id)
    assert [node["id"] for node in tree] == [root.id, other.id]
    middle_node = tree[0]["child_sections"][0]
    assert middle_node["id"] == middle.id
    assert middle_node["activity_modules_count"] == 2
    assert [node["id"] for node in middle_node["child_sections"]] == [leaf.id]
    assert tree[1]["child_sections"] == []


def test_children_of_unknown_section_is_not_found(db_session, chain):
    with pytest.raises(NotFoundError):
        CourseSectionService(db_session).find_child_sections(9999)
