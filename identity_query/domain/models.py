from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel


def now_utc() -> datetime:
    return datetime.now(UTC)


class StoredDocument(SQLModel, table=True):
    __tablename__ = "documents"

    collection: str = Field(primary_key=True)
    id: str = Field(primary_key=True)
    body: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    updated_at: datetime = Field(default_factory=now_utc, index=True)


class StoredElement(SQLModel, table=True):
    """One scalar field of one element of an embedded list in a document."""

    __tablename__ = "document_elements"
    __table_args__ = (
        Index("ix_document_elements_lookup", "collection", "path", "field", "value"),
        Index("ix_document_elements_document", "collection", "document_id"),
    )

    collection: str = Field(primary_key=True)
    document_id: str = Field(primary_key=True)
    path: str = Field(primary_key=True)
    position: int = Field(primary_key=True)
    field: str = Field(primary_key=True)
    value: str


class Document(BaseModel):
    collection_name: ClassVar[str]

    id: str = PydanticField(default_factory=lambda: str(uuid4()))
    tenant_id: str | None = None
    is_deleted: bool = False
    created_at: datetime = PydanticField(default_factory=now_utc)


class UserLogin(BaseModel):
    login_provider: str
    provider_key: str
    provider_display_name: str | None = None


class UserClaim(BaseModel):
    claim_type: str
    claim_value: str


class UserRole(BaseModel):
    role_id: str


class UserOrganizationUnit(BaseModel):
    organization_unit_id: str


class OrganizationUnitRole(BaseModel):
    role_id: str


class User(Document):
    collection_name: ClassVar[str] = "users"

    user_name: str
    normalized_user_name: str
    email: str
    normalized_email: str
    name: str | None = None
    surname: str | None = None
    logins: list[UserLogin] = PydanticField(default_factory=list)
    claims: list[UserClaim] = PydanticField(default_factory=list)
    roles: list[UserRole] = PydanticField(default_factory=list)
    organization_units: list[UserOrganizationUnit] = PydanticField(default_factory=list)

    @property
    def role_ids(self) -> set[str]:
        return {item.role_id for item in self.roles}

    @property
    def organization_unit_ids(self) -> set[str]:
        return {item.organization_unit_id for item in self.organization_units}


class Role(Document):
    collection_name: ClassVar[str] = "roles"

    name: str
    normalized_name: str
    is_default: bool = False
    is_public: bool = True


class OrganizationUnit(Document):
    collection_name: ClassVar[str] = "organization_units"

    code: str
    display_name: str
    parent_id: str | None = None
    roles: list[OrganizationUnitRole] = PydanticField(default_factory=list)

    @property
    def role_ids(self) -> set[str]:
        return {item.role_id for item in self.roles}


class ORMReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserRead(ORMReadModel):
    id: str
    tenant_id: str | None = None
    user_name: str
    email: str
    name: str | None = None
    surname: str | None = None
    logins: list[UserLogin]
    claims: list[UserClaim]
    roles: list[UserRole]
    organization_units: list[UserOrganizationUnit]
    created_at: datetime


class UserListRead(BaseModel):
    total_count: int
    items: list[UserRead]


class RoleRead(ORMReadModel):
    id: str
    tenant_id: str | None = None
    name: str
    is_default: bool
    is_public: bool
    created_at: datetime


class OrganizationUnitRead(ORMReadModel):
    id: str
    tenant_id: str | None = None
    code: str
    display_name: str
    parent_id: str | None = None
    created_at: datetime


class RoleNamesRead(BaseModel):
    user_id: str
    role_names: list[str]
