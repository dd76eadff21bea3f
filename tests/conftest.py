from __future__ import annotations

from collections.abc import Generator, Iterable
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from identity_query.domain.models import (
    OrganizationUnit,
    OrganizationUnitRole,
    Role,
    User,
    UserClaim,
    UserLogin,
    UserOrganizationUnit,
    UserRole,
)
from identity_query.infra import db
from identity_query.infra.document_store import DocumentStore
from identity_query.services.identity_user_service import IdentityUserService


class IdentitySeeder:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def role(self, name: str, *, tenant_id: str | None = None, is_deleted: bool = False) -> Role:
        role = Role(
            name=name,
            normalized_name=name.upper(),
            tenant_id=tenant_id,
            is_deleted=is_deleted,
        )
        self.store.save(role)
        return role

    def organization_unit(
        self,
        code: str,
        *,
        roles: Iterable[Role] = (),
        parent: OrganizationUnit | None = None,
        tenant_id: str | None = None,
        is_deleted: bool = False,
    ) -> OrganizationUnit:
        unit = OrganizationUnit(
            code=code,
            display_name=f"unit {code}",
            parent_id=parent.id if parent is not None else None,
            roles=[OrganizationUnitRole(role_id=role.id) for role in roles],
            tenant_id=tenant_id,
            is_deleted=is_deleted,
        )
        self.store.save(unit)
        return unit

    def user(
        self,
        user_name: str,
        *,
        roles: Iterable[Role] = (),
        organization_units: Iterable[OrganizationUnit] = (),
        email: str | None = None,
        name: str | None = None,
        surname: str | None = None,
        logins: Iterable[tuple[str, str]] = (),
        claims: Iterable[tuple[str, str]] = (),
        tenant_id: str | None = None,
        is_deleted: bool = False,
    ) -> User:
        email = email or f"{user_name}@example.com"
        user = User(
            user_name=user_name,
            normalized_user_name=user_name.upper(),
            email=email,
            normalized_email=email.upper(),
            name=name,
            surname=surname,
            logins=[UserLogin(login_provider=provider, provider_key=key) for provider, key in logins],
            claims=[UserClaim(claim_type=claim_type, claim_value=value) for claim_type, value in claims],
            roles=[UserRole(role_id=role.id) for role in roles],
            organization_units=[
                UserOrganizationUnit(organization_unit_id=unit.id) for unit in organization_units
            ],
            tenant_id=tenant_id,
            is_deleted=is_deleted,
        )
        self.store.save(user)
        return user


@pytest.fixture()
def test_engine(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> Generator[Engine, None, None]:
    db_path = tmp_path / "identity_query_test.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)
    monkeypatch.setattr(db, "engine", engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def store(test_engine: Engine) -> DocumentStore:
    return DocumentStore()


@pytest.fixture()
def seed(store: DocumentStore) -> IdentitySeeder:
    return IdentitySeeder(store)


@pytest.fixture()
def service(store: DocumentStore) -> IdentityUserService:
    return IdentityUserService(store)
