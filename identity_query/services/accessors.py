from __future__ import annotations

from collections.abc import Iterable

from identity_query.domain.models import OrganizationUnit, Role, User
from identity_query.domain.query import Eq, OrderBy, QuerySpec, in_
from identity_query.infra.cancellation import CancellationToken
from identity_query.infra.document_store import DocumentStore
from identity_query.services.errors import NotFoundError


class EntityAccessors:
    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store = store or DocumentStore()

    def get_user(self, user_id: str, *, cancel_token: CancellationToken | None = None) -> User:
        user = self.store.get_by_id(User, user_id, cancel_token=cancel_token)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def find_role_by_normalized_name(
        self,
        normalized_name: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> Role | None:
        return self.store.find_first(
            Role,
            Eq("normalized_name", normalized_name),
            cancel_token=cancel_token,
        )

    def get_roles_by_ids(
        self,
        role_ids: Iterable[str],
        *,
        cancel_token: CancellationToken | None = None,
        bypass_filters: bool = False,
    ) -> list[Role]:
        wanted = set(role_ids)
        if not wanted:
            return []
        spec = QuerySpec(predicate=in_("id", wanted), order_by=(OrderBy("name"),))
        return self.store.find(Role, spec, cancel_token=cancel_token, bypass_filters=bypass_filters)

    def get_organization_units_by_ids(
        self,
        organization_unit_ids: Iterable[str],
        *,
        cancel_token: CancellationToken | None = None,
        bypass_filters: bool = False,
    ) -> list[OrganizationUnit]:
        wanted = set(organization_unit_ids)
        if not wanted:
            return []
        spec = QuerySpec(predicate=in_("id", wanted), order_by=(OrderBy("code"),))
        return self.store.find(
            OrganizationUnit,
            spec,
            cancel_token=cancel_token,
            bypass_filters=bypass_filters,
        )
