from __future__ import annotations

import pytest
from conftest import IdentitySeeder
from sqlmodel import Session, select

from identity_query.domain.models import Role, StoredElement, User, UserRole
from identity_query.domain.query import (
    MATCH_ALL,
    And,
    ElemMatch,
    Eq,
    OrderBy,
    QuerySpec,
    StartsWith,
    and_,
    in_,
    or_,
)
from identity_query.infra import db
from identity_query.infra.cancellation import CancellationToken, OperationCancelledError
from identity_query.infra.document_store import DocumentStore, SoftDeleteFilter


def test_save_replaces_element_index(store: DocumentStore, seed: IdentitySeeder) -> None:
    admin = seed.role("admin")
    viewer = seed.role("viewer")
    user = seed.user("alice", roles=[admin])
    has_admin = ElemMatch("roles", (Eq("role_id", admin.id),))

    assert store.find_first(User, has_admin) is not None

    user.roles = [UserRole(role_id=viewer.id)]
    store.save(user)

    assert store.find_first(User, has_admin) is None
    assert store.find_first(User, ElemMatch("roles", (Eq("role_id", viewer.id),))) is not None
    with Session(db.get_engine()) as session:
        elements = session.exec(
            select(StoredElement).where(StoredElement.document_id == user.id)
        ).all()
    assert [(item.path, item.field, item.value) for item in elements] == [("roles", "role_id", viewer.id)]


def test_delete_removes_document_and_elements(store: DocumentStore, seed: IdentitySeeder) -> None:
    role = seed.role("admin")
    user = seed.user("bob", roles=[role])

    store.delete(User, user.id)

    assert store.get_by_id(User, user.id) is None
    assert store.count(User, ElemMatch("roles", (Eq("role_id", role.id),))) == 0
    store.delete(User, user.id)


def test_collections_are_isolated(store: DocumentStore, seed: IdentitySeeder) -> None:
    role = seed.role("shared-id")

    assert store.get_by_id(Role, role.id) is not None
    assert store.get_by_id(User, role.id) is None


def test_find_ids_and_count(store: DocumentStore, seed: IdentitySeeder) -> None:
    a = seed.organization_unit("01")
    b = seed.organization_unit("01.01")
    seed.organization_unit("02")

    from identity_query.domain.models import OrganizationUnit

    assert sorted(store.find_ids(OrganizationUnit, StartsWith("code", "01"))) == sorted([a.id, b.id])
    assert store.count(OrganizationUnit, MATCH_ALL) == 3
    assert store.count(OrganizationUnit, in_("id", [])) == 0


def test_order_and_paging(store: DocumentStore, seed: IdentitySeeder) -> None:
    for name in ("c", "a", "d", "b"):
        seed.role(name)

    descending = store.find(Role, QuerySpec(order_by=(OrderBy("name", ascending=False),)))
    page = store.find(Role, QuerySpec(order_by=(OrderBy("name"),), skip=1, take=2))

    assert [role.name for role in descending] == ["d", "c", "b", "a"]
    assert [role.name for role in page] == ["b", "c"]


def test_bypass_filters_sees_deleted_documents(store: DocumentStore, seed: IdentitySeeder) -> None:
    role = seed.role("retired", is_deleted=True)

    assert store.get_by_id(Role, role.id) is None
    assert store.get_by_id(Role, role.id, bypass_filters=True) is not None


def test_store_without_filters(test_engine, seed: IdentitySeeder) -> None:
    seed.role("retired", is_deleted=True)
    plain = DocumentStore(data_filters=())
    soft_delete_only = DocumentStore(data_filters=[SoftDeleteFilter()])

    assert plain.count(Role, MATCH_ALL) == 1
    assert soft_delete_only.count(Role, MATCH_ALL) == 0


def test_cancelled_token_aborts_every_read(store: DocumentStore, seed: IdentitySeeder) -> None:
    role = seed.role("admin")
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelledError):
        store.get_by_id(Role, role.id, cancel_token=token)
    with pytest.raises(OperationCancelledError):
        store.count(Role, MATCH_ALL, cancel_token=token)
    with pytest.raises(OperationCancelledError):
        store.find_ids(Role, MATCH_ALL, cancel_token=token)


def test_predicate_combinators_flatten() -> None:
    a = Eq("a", 1)
    b = Eq("b", 2)
    c = Eq("c", 3)

    assert and_(a, None, MATCH_ALL) == a
    assert and_(and_(a, b), c) == And((a, b, c))
    assert or_(a) == a
    assert or_(or_(a, b), c).clauses == (a, b, c)
    assert in_("id", ["y", "x", "y"]).values == ("x", "y")


def test_query_spec_rejects_negative_paging() -> None:
    with pytest.raises(ValueError):
        QuerySpec(skip=-1)
    with pytest.raises(ValueError):
        QuerySpec(take=-1)


def test_cancel_during_query_discards_rows(
    monkeypatch: pytest.MonkeyPatch,
    store: DocumentStore,
    seed: IdentitySeeder,
) -> None:
    seed.role("admin")
    token = CancellationToken()
    open_session = store._session

    def _session_then_cancel() -> Session:
        session = open_session()
        token.cancel()
        return session

    monkeypatch.setattr(store, "_session", _session_then_cancel)

    with pytest.raises(OperationCancelledError):
        store.find(Role, QuerySpec(), cancel_token=token)
