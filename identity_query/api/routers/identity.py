from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from identity_query.api.deps import bind_tenant
from identity_query.domain.models import (
    OrganizationUnitRead,
    RoleNamesRead,
    RoleRead,
    User,
    UserListRead,
    UserRead,
)
from identity_query.domain.organization_units import CodeMatch
from identity_query.services.errors import (
    FilterBypassDeniedError,
    InvalidQueryError,
    NotFoundError,
)
from identity_query.services.identity_user_service import IdentityUserService
from identity_query.services.user_query import UserQueryPlan

router = APIRouter(dependencies=[Depends(bind_tenant)])


def get_identity_user_service() -> IdentityUserService:
    return IdentityUserService()


Service = Annotated[IdentityUserService, Depends(get_identity_user_service)]


def _handle_identity_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, InvalidQueryError):
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if isinstance(exc, FilterBypassDeniedError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    raise exc


def _user_or_404(user: User | None) -> UserRead:
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return UserRead.model_validate(user)


def _users(users: list[User]) -> list[UserRead]:
    return [UserRead.model_validate(item) for item in users]


@router.get("/users", response_model=UserListRead)
def list_users(
    service: Service,
    filter_text: Annotated[str | None, Query(alias="filter")] = None,
    sorting: str | None = None,
    skip: Annotated[int, Query(ge=0)] = 0,
    take: Annotated[int | None, Query(ge=0)] = None,
) -> UserListRead:
    try:
        plan = UserQueryPlan.build(filter_text, sorting, skip, take)
        total = service.user_query.count_users(plan)
        users = service.user_query.list_users(plan)
    except InvalidQueryError as exc:
        _handle_identity_error(exc)
        raise
    return UserListRead(total_count=total, items=_users(users))


@router.get("/users/lookup/by-username/{normalized_user_name}", response_model=UserRead)
def find_by_user_name(normalized_user_name: str, service: Service) -> UserRead:
    return _user_or_404(service.find_by_normalized_user_name(normalized_user_name))


@router.get("/users/lookup/by-email/{normalized_email}", response_model=UserRead)
def find_by_email(normalized_email: str, service: Service) -> UserRead:
    return _user_or_404(service.find_by_normalized_email(normalized_email))


@router.get("/users/lookup/by-login", response_model=UserRead)
def find_by_login(login_provider: str, provider_key: str, service: Service) -> UserRead:
    return _user_or_404(service.find_by_login(login_provider, provider_key))


@router.get("/users/lookup/by-claim", response_model=list[UserRead])
def list_by_claim(claim_type: str, claim_value: str, service: Service) -> list[UserRead]:
    return _users(service.list_by_claim(claim_type, claim_value))


@router.get("/roles/{normalized_role_name}/users", response_model=list[UserRead])
def list_by_role_name(normalized_role_name: str, service: Service) -> list[UserRead]:
    return _users(service.list_by_normalized_role_name(normalized_role_name))


@router.get("/users/{user_id}", response_model=UserRead)
def get_user(user_id: str, service: Service) -> UserRead:
    try:
        return UserRead.model_validate(service.get(user_id))
    except NotFoundError as exc:
        _handle_identity_error(exc)
        raise


@router.get("/users/{user_id}/roles", response_model=list[RoleRead])
def get_user_roles(user_id: str, service: Service) -> list[RoleRead]:
    try:
        roles = service.get_roles(user_id)
    except NotFoundError as exc:
        _handle_identity_error(exc)
        raise
    return [RoleRead.model_validate(item) for item in roles]


@router.get("/users/{user_id}/role-names", response_model=RoleNamesRead)
def get_user_role_names(user_id: str, service: Service) -> RoleNamesRead:
    try:
        names = service.get_role_names(user_id)
    except NotFoundError as exc:
        _handle_identity_error(exc)
        raise
    return RoleNamesRead(user_id=user_id, role_names=names)


@router.get("/users/{user_id}/effective-role-ids", response_model=list[str])
def get_user_effective_role_ids(user_id: str, service: Service) -> list[str]:
    try:
        return sorted(service.resolve_effective_role_ids(user_id))
    except NotFoundError as exc:
        _handle_identity_error(exc)
        raise


@router.get("/users/{user_id}/organization-units", response_model=list[OrganizationUnitRead])
def get_user_organization_units(user_id: str, service: Service) -> list[OrganizationUnitRead]:
    try:
        units = service.get_organization_units(user_id)
    except NotFoundError as exc:
        _handle_identity_error(exc)
        raise
    return [OrganizationUnitRead.model_validate(item) for item in units]


@router.get("/users/{user_id}/organization-unit-role-names", response_model=RoleNamesRead)
def get_user_organization_unit_role_names(user_id: str, service: Service) -> RoleNamesRead:
    try:
        names = service.get_role_names_in_organization_units_unfiltered(user_id)
    except (NotFoundError, FilterBypassDeniedError) as exc:
        _handle_identity_error(exc)
        raise
    return RoleNamesRead(user_id=user_id, role_names=names)


@router.get("/organization-units/users", response_model=list[UserRead])
def list_users_in_organization_units(
    service: Service,
    ids: Annotated[list[str], Query()],
) -> list[UserRead]:
    return _users(service.users_in_organization_units(ids))


@router.get("/organization-units/subtree/users", response_model=list[UserRead])
def list_users_under_subtree(
    service: Service,
    code: str,
    match: CodeMatch = CodeMatch.SEGMENT,
) -> list[UserRead]:
    return _users(service.users_under_subtree(code, match=match))


@router.get("/organization-units/{organization_unit_id}/users", response_model=list[UserRead])
def list_users_in_organization_unit(organization_unit_id: str, service: Service) -> list[UserRead]:
    return _users(service.users_in_organization_unit(organization_unit_id))
