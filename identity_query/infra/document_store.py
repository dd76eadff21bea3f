from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Protocol, TypeVar

from sqlalchemy import and_, delete, false, func, or_, true
from sqlalchemy.engine import Engine
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, col, select

from identity_query.domain.models import Document, StoredDocument, StoredElement, now_utc
from identity_query.domain.query import (
    And,
    Contains,
    ElemMatch,
    Eq,
    In,
    Or,
    OrderBy,
    Predicate,
    QuerySpec,
    StartsWith,
    and_ as and_predicate,
)
from identity_query.infra import db
from identity_query.infra.cancellation import CancellationToken, raise_if_cancelled
from identity_query.infra.logger import get_logger
from identity_query.infra.tenant import get_tenant_id

D = TypeVar("D", bound=Document)

logger = get_logger(__name__)


class DataFilter(Protocol):
    def predicate_for(self, collection: str) -> Predicate | None: ...


class TenantFilter:
    """Limits every collection to the tenant of the current request context."""

    def predicate_for(self, collection: str) -> Predicate | None:
        tenant_id = get_tenant_id()
        if tenant_id is None:
            return None
        return Eq("tenant_id", tenant_id)


class SoftDeleteFilter:
    def predicate_for(self, collection: str) -> Predicate | None:
        return Eq("is_deleted", False)


def default_data_filters() -> tuple[DataFilter, ...]:
    return (TenantFilter(), SoftDeleteFilter())


def _field_expr(field_name: str) -> Any:
    if field_name == "id":
        return col(StoredDocument.id)
    return StoredDocument.body[field_name]  # type: ignore[index]


def _scalar_expr(field_name: str, sample: Any) -> Any:
    expr = _field_expr(field_name)
    if field_name == "id":
        return expr
    if isinstance(sample, bool):
        return expr.as_boolean()
    if isinstance(sample, int):
        return expr.as_integer()
    return expr.as_string()


def _element_clause(element: Any, condition: Eq | In) -> ColumnElement[bool]:
    if isinstance(condition, Eq):
        return and_(element.field == condition.field, element.value == str(condition.value))
    return and_(
        element.field == condition.field,
        element.value.in_([str(item) for item in condition.values]),
    )


def _compile_elem_match(collection: str, predicate: ElemMatch) -> ColumnElement[bool]:
    if not predicate.conditions:
        raise ValueError("ElemMatch requires at least one condition")
    first, *rest = predicate.conditions
    base = aliased(StoredElement)
    statement = select(base.document_id).where(
        base.collection == collection,
        base.path == predicate.path,
        _element_clause(base, first),
    )
    for condition in rest:
        other = aliased(StoredElement)
        statement = statement.join(
            other,
            and_(
                other.collection == base.collection,
                other.document_id == base.document_id,
                other.path == base.path,
                other.position == base.position,
            ),
        ).where(_element_clause(other, condition))
    return col(StoredDocument.id).in_(statement)


def compile_predicate(collection: str, predicate: Predicate) -> ColumnElement[bool]:
    if isinstance(predicate, Eq):
        return _scalar_expr(predicate.field, predicate.value) == predicate.value
    if isinstance(predicate, In):
        if not predicate.values:
            return false()
        return _scalar_expr(predicate.field, predicate.values[0]).in_(list(predicate.values))
    if isinstance(predicate, Contains):
        return _scalar_expr(predicate.field, "").contains(predicate.text, autoescape=True)
    if isinstance(predicate, StartsWith):
        return _scalar_expr(predicate.field, "").startswith(predicate.prefix, autoescape=True)
    if isinstance(predicate, ElemMatch):
        return _compile_elem_match(collection, predicate)
    if isinstance(predicate, And):
        if not predicate.clauses:
            return true()
        return and_(*(compile_predicate(collection, item) for item in predicate.clauses))
    if isinstance(predicate, Or):
        if not predicate.clauses:
            return false()
        return or_(*(compile_predicate(collection, item) for item in predicate.clauses))
    raise TypeError(f"unsupported predicate: {predicate!r}")


def _order_clauses(order_by: Sequence[OrderBy]) -> list[Any]:
    clauses: list[Any] = []
    for item in order_by:
        expr = _scalar_expr(item.field, "")
        clauses.append(expr.asc() if item.ascending else expr.desc())
    clauses.append(col(StoredDocument.id).asc())
    return clauses


def _element_rows(collection: str, document_id: str, body: dict[str, Any]) -> Iterable[StoredElement]:
    for path, value in body.items():
        if not isinstance(value, list):
            continue
        for position, element in enumerate(value):
            if not isinstance(element, dict):
                continue
            for field_name, field_value in element.items():
                if field_value is None or isinstance(field_value, (dict, list)):
                    continue
                yield StoredElement(
                    collection=collection,
                    document_id=document_id,
                    path=path,
                    position=position,
                    field=field_name,
                    value=str(field_value),
                )


class DocumentStore:
    """Schema-less collections of pydantic documents kept in SQL tables.

    Each document is one JSON body in ``documents``. Scalar fields of embedded
    list elements are copied into ``document_elements`` on save so that
    "any element matches" predicates run in the database instead of in Python.

    Ambient data filters (tenant, soft delete) are added to every read unless
    the caller passes ``bypass_filters=True``.

    A cancel token is checked before a query is issued and after its rows are
    fetched. A query already running is not interrupted; it finishes and its
    rows are discarded with ``OperationCancelledError``.
    """

    def __init__(
        self,
        engine: Engine | None = None,
        data_filters: Sequence[DataFilter] | None = None,
    ) -> None:
        self._engine = engine
        self.data_filters = tuple(data_filters) if data_filters is not None else default_data_filters()

    def _session(self) -> Session:
        return Session(self._engine or db.get_engine(), expire_on_commit=False)

    def _where(self, collection: str, predicate: Predicate, bypass_filters: bool) -> ColumnElement[bool]:
        filters: list[Predicate | None] = []
        if not bypass_filters:
            filters = [item.predicate_for(collection) for item in self.data_filters]
        combined = and_predicate(predicate, *filters)
        return and_(
            col(StoredDocument.collection) == collection,
            compile_predicate(collection, combined),
        )

    def get_by_id(
        self,
        model: type[D],
        document_id: str,
        *,
        cancel_token: CancellationToken | None = None,
        bypass_filters: bool = False,
    ) -> D | None:
        return self.find_first(
            model,
            Eq("id", document_id),
            cancel_token=cancel_token,
            bypass_filters=bypass_filters,
        )

    def find(
        self,
        model: type[D],
        spec: QuerySpec,
        *,
        cancel_token: CancellationToken | None = None,
        bypass_filters: bool = False,
    ) -> list[D]:
        collection = model.collection_name
        statement = (
            select(StoredDocument)
            .where(self._where(collection, spec.predicate, bypass_filters))
            .order_by(*_order_clauses(spec.order_by))
        )
        if spec.skip:
            statement = statement.offset(spec.skip)
        if spec.take is not None:
            statement = statement.limit(spec.take)

        raise_if_cancelled(cancel_token)
        with self._session() as session:
            rows = list(session.exec(statement).all())
        raise_if_cancelled(cancel_token)

        logger.debug(
            "document_store.find",
            collection=collection,
            skip=spec.skip,
            take=spec.take,
            returned=len(rows),
            bypass_filters=bypass_filters,
        )
        return [model.model_validate(row.body) for row in rows]

    def find_first(
        self,
        model: type[D],
        predicate: Predicate,
        *,
        cancel_token: CancellationToken | None = None,
        bypass_filters: bool = False,
    ) -> D | None:
        found = self.find(
            model,
            QuerySpec(predicate=predicate, take=1),
            cancel_token=cancel_token,
            bypass_filters=bypass_filters,
        )
        return found[0] if found else None

    def find_ids(
        self,
        model: type[D],
        predicate: Predicate,
        *,
        cancel_token: CancellationToken | None = None,
        bypass_filters: bool = False,
    ) -> list[str]:
        collection = model.collection_name
        statement = (
            select(StoredDocument.id)
            .where(self._where(collection, predicate, bypass_filters))
            .order_by(col(StoredDocument.id))
        )

        raise_if_cancelled(cancel_token)
        with self._session() as session:
            ids = list(session.exec(statement).all())
        raise_if_cancelled(cancel_token)

        logger.debug("document_store.find_ids", collection=collection, returned=len(ids))
        return ids

    def count(
        self,
        model: type[D],
        predicate: Predicate,
        *,
        cancel_token: CancellationToken | None = None,
        bypass_filters: bool = False,
    ) -> int:
        collection = model.collection_name
        statement = (
            select(func.count())
            .select_from(StoredDocument)
            .where(self._where(collection, predicate, bypass_filters))
        )

        raise_if_cancelled(cancel_token)
        with self._session() as session:
            total = session.exec(statement).one()
        raise_if_cancelled(cancel_token)

        logger.debug("document_store.count", collection=collection, total=total)
        return int(total)

    def save(self, document: Document) -> None:
        self.save_many([document])

    def save_many(self, documents: Iterable[Document]) -> None:
        with self._session() as session:
            for document in documents:
                collection = document.collection_name
                body = document.model_dump(mode="json")
                stored = session.get(StoredDocument, (collection, document.id))
                if stored is None:
                    stored = StoredDocument(collection=collection, id=document.id, body=body)
                else:
                    stored.body = body
                    stored.updated_at = now_utc()
                session.add(stored)
                session.exec(  # type: ignore[call-overload]
                    delete(StoredElement)
                    .where(col(StoredElement.collection) == collection)
                    .where(col(StoredElement.document_id) == document.id)
                )
                for element in _element_rows(collection, document.id, body):
                    session.add(element)
            session.commit()

    def delete(self, model: type[D], document_id: str) -> None:
        collection = model.collection_name
        with self._session() as session:
            session.exec(  # type: ignore[call-overload]
                delete(StoredElement)
                .where(col(StoredElement.collection) == collection)
                .where(col(StoredElement.document_id) == document_id)
            )
            stored = session.get(StoredDocument, (collection, document_id))
            if stored is not None:
                session.delete(stored)
            session.commit()
