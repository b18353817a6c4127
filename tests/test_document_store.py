from __future__ import annotations

import pytest
from sqlalchemy.exc import SQLAlchemyError

from courseware.crud.document_store import COURSE_SECTIONS, COURSES, DocumentStore
from courseware.models.course.course_section_model import CourseSection
from courseware.services.errors import InvalidArgumentError, NotFoundError, TransactionFailureError
from tests.utils import create_course


@pytest.fixture()
def store(db_session):
    return DocumentStore(db_session)


@pytest.fixture()
def course(db_session):
    return create_course(db_session, title="Storage")


def _section(store, course, title, order, parent_id=None):
    return store.create(
        COURSE_SECTIONS,
        {
            "course_id": course.id,
            "title": title,
            "description": title,
            "parent_section_id": parent_id,
            "content_order": order,
        },
    )


def test_find_filters_and_sorts(store, course):
    b = _section(store, course, "B", 1)
    a = _section(store, course, "A", 0)
    child = _section(store, course, "Child", 0, parent_id=a.id)

    roots = store.find(COURSE_SECTIONS, where={"course_id": course.id, "parent_section_id": None}, sort="content_order")
    assert [s.id for s in roots] == [a.id, b.id]

    descending = store.find(COURSE_SECTIONS, where={"course_id": course.id}, sort="-content_order")
    assert descending[0].id == b.id

    picked = store.find(COURSE_SECTIONS, where={"id": [b.id, child.id]})
    assert [s.id for s in picked] == [b.id, child.id]

    assert store.count(COURSE_SECTIONS, where={"parent_section_id": a.id}) == 1


def test_find_by_id_missing_raises(store):
    with pytest.raises(NotFoundError) as exc:
        store.find_by_id(COURSES, 99)
    assert exc.value.status_code == 404


def test_unknown_collection_and_fields(store, course):
    with pytest.raises(InvalidArgumentError):
        store.find("lessons")
    with pytest.raises(InvalidArgumentError):
        store.create(COURSE_SECTIONS, {"course_id": course.id, "colour": "red"})


def test_update_and_delete(store, course):
    section = _section(store, course, "Draft", 0)

    updated = store.update(COURSE_SECTIONS, section.id, {"title": "Final"})
    assert updated.title == "Final"

    store.delete(COURSE_SECTIONS, section.id)
    assert store.count(COURSE_SECTIONS, where={"course_id": course.id}) == 0


def test_transaction_commits(db_session, store, course):
    with store.transaction() as tx:
        assert store.current_transaction is tx
        _section(store, course, "Kept", 0)

    assert not tx.active
    assert store.current_transaction is None
    db_session.expire_all()
    assert db_session.query(CourseSection).count() == 1


def test_transaction_rolls_back_on_error(db_session, store, course):
    with pytest.raises(InvalidArgumentError):
        with store.transaction():
            _section(store, course, "Lost", 0)
            raise InvalidArgumentError("nope")

    assert store.current_transaction is None
    assert db_session.query(CourseSection).count() == 0


def test_nested_transaction_joins_outer(db_session, store, course):
    with pytest.raises(RuntimeError):
        with store.transaction() as outer:
            with store.transaction() as inner:
                assert inner is outer
                _section(store, course, "Inner", 0)
            assert outer.active
            raise RuntimeError("abort outer")

    assert db_session.query(CourseSection).count() == 0


def test_explicit_handles(db_session, store, course):
    tx = store.begin_transaction()
    with pytest.raises(TransactionFailureError):
        store.begin_transaction()

    _section(store, course, "Explicit", 0)
    store.rollback_transaction(tx)

    with pytest.raises(TransactionFailureError):
        store.commit_transaction(tx)
    assert db_session.query(CourseSection).count() == 0


def test_commit_failure_is_wrapped(db_session, store, monkeypatch):
    def _fail():
        raise SQLAlchemyError("disk full")

    tx = store.begin_transaction()
    monkeypatch.setattr(db_session, "commit", _fail)

    with pytest.raises(TransactionFailureError) as exc:
        store.commit_transaction(tx)

    assert exc.value.status_code == 500
    assert not tx.active


def test_begin_failure_is_wrapped(db_session, store, monkeypatch):
    def _fail():
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db_session, "in_transaction", lambda: False)
    monkeypatch.setattr(db_session, "begin", _fail)

    with pytest.raises(TransactionFailureError) as exc:
        store.begin_transaction()

    assert exc.value.status_code == 500
    assert "connection lost" in exc.value.message
    assert store.current_transaction is None
