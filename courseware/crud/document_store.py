"""Generic transactional document store over a SQLAlchemy session.

The content tree engine only talks to this small contract (find, find_by_id,
create, update, delete, count and explicit transactions), so it never builds
queries itself.  Collections are addressed by slug and map onto ORM models.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional, Sequence

from sqlalchemy import inspect, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from courseware.models.course.activity_module_model import ActivityModule
from courseware.models.course.course_activity_module_link_model import CourseActivityModuleLink
from courseware.models.course.course_model import Course
from courseware.models.course.course_section_model import CourseSection
from courseware.services.errors import InvalidArgumentError, NotFoundError, TransactionFailureError

logger = logging.getLogger(__name__)

COURSES = "courses"
COURSE_SECTIONS = "course-sections"
ACTIVITY_MODULES = "activity-modules"
COURSE_ACTIVITY_MODULE_LINKS = "course-activity-module-links"

COLLECTIONS: dict[str, type] = {
    COURSES: Course,
    COURSE_SECTIONS: CourseSection,
    ACTIVITY_MODULES: ActivityModule,
    COURSE_ACTIVITY_MODULE_LINKS: CourseActivityModuleLink,
}


@dataclass(slots=True)
class StoreTransaction:
    """Handle threaded through one unit of work."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    active: bool = True


class DocumentStore:
    """CRUD + transactions over the course content collections.

    The store owns the session's transaction: ``commit_transaction`` commits
    everything done on the session since it was opened, and
    ``rollback_transaction`` discards it.
    """

    def __init__(self, db: Session):
        self.db = db
        self._current: StoreTransaction | None = None

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------
    @staticmethod
    def _model(collection: str) -> type:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise InvalidArgumentError(f"Unknown collection '{collection}'") from None

    @staticmethod
    def _check_fields(model: type, data: Mapping[str, Any]) -> None:
        columns = {attr.key for attr in inspect(model).column_attrs}
        unknown = set(data) - columns
        if unknown:
            raise InvalidArgumentError(
                f"Unknown field(s) for {model.__name__}: {', '.join(sorted(unknown))}"
            )

    def _filtered(self, model: type, where: Mapping[str, Any] | None):
        statement = select(model)
        for name, value in (where or {}).items():
            column = getattr(model, name)
            if value is None:
                statement = statement.where(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                statement = statement.where(column.in_(list(value)))
            else:
                statement = statement.where(column == value)
        return statement

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def find(
        self,
        collection: str,
        where: Mapping[str, Any] | None = None,
        sort: str | None = None,
        *,
        load: Sequence[str] = (),
    ) -> list[Any]:
        """Return every record matching the equality filters in *where*.

        A ``None`` value matches NULL and a collection value matches any of its
        members.  *sort* is a field name, prefixed with ``-`` for descending
        order; ties are always broken by id.
        """
        model = self._model(collection)
        statement = self._filtered(model, where)
        if sort:
            descending = sort.startswith("-")
            column = getattr(model, sort.lstrip("-"))
            statement = statement.order_by(column.desc() if descending else column.asc())
        statement = statement.order_by(model.id.asc())
        for relation in load:
            statement = statement.options(selectinload(getattr(model, relation)))
        return list(self.db.scalars(statement).all())

    def find_by_id(self, collection: str, record_id: int) -> Any:
        model = self._model(collection)
        record = self.db.get(model, record_id)
        if record is None:
            raise NotFoundError(f"{model.__name__} {record_id} not found")
        return record

    def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        model = self._model(collection)
        statement = self._filtered(model, where).with_only_columns(func.count(model.id))
        return int(self.db.scalar(statement) or 0)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create(self, collection: str, data: Mapping[str, Any]) -> Any:
        model = self._model(collection)
        self._check_fields(model, data)
        record = model(**data)
        self.db.add(record)
        self.db.flush()
        return record

    def update(self, collection: str, record_id: int, data: Mapping[str, Any]) -> Any:
        model = self._model(collection)
        self._check_fields(model, data)
        record = self.find_by_id(collection, record_id)
        for name, value in data.items():
            setattr(record, name, value)
        self.db.flush()
        return record

    def delete(self, collection: str, record_id: int) -> Any:
        record = self.find_by_id(collection, record_id)
        self.db.delete(record)
        self.db.flush()
        return record

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def begin_transaction(self) -> StoreTransaction:
        if self._current is not None and self._current.active:
            raise TransactionFailureError("A transaction is already open on this store")
        try:
            if not self.db.in_transaction():
                self.db.begin()
        except SQLAlchemyError as exc:
            raise TransactionFailureError(f"Could not begin transaction: {exc}") from exc
        self._current = StoreTransaction()
        logger.debug("Transaction %s started", self._current.id)
        return self._current

    def commit_transaction(self, tx: StoreTransaction) -> None:
        self._ensure_current(tx)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise TransactionFailureError(f"Could not commit transaction: {exc}") from exc
        finally:
            tx.active = False
            self._current = None
        logger.debug("Transaction %s committed", tx.id)

    def rollback_transaction(self, tx: StoreTransaction) -> None:
        self._ensure_current(tx)
        try:
            self.db.rollback()
        finally:
            tx.active = False
            self._current = None
        logger.debug("Transaction %s rolled back", tx.id)

    def _ensure_current(self, tx: StoreTransaction) -> None:
        if not tx.active or tx is not self._current:
            raise TransactionFailureError(f"Transaction {tx.id} is not active on this store")

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Run the block in one transaction, rolling back on any exception.

        Nested blocks join the outer transaction; only the outermost block
        commits.
        """
        if self._current is not None and self._current.active:
            yield self._current
            return

        tx = self.begin_transaction()
        try:
            yield tx
        except BaseException:
            self.rollback_transaction(tx)
            raise
        self.commit_transaction(tx)

    @property
    def current_transaction(self) -> Optional[StoreTransaction]:
        return self._current
