from __future__ import annotations

from collections.abc import Iterable

from identity_query.domain.models import OrganizationUnit, Role, User
from identity_query.domain.organization_units import CodeMatch
from identity_query.domain.query import ElemMatch, Eq, QuerySpec
from identity_query.infra.cancellation import CancellationToken
from identity_query.infra.document_store import DocumentStore
from identity_query.services.accessors import EntityAccessors
from identity_query.services.hierarchy import USER_ORDER, HierarchyResolver
from identity_query.services.membership import MembershipResolver
from identity_query.services.user_query import UserQueryBuilder, UserQueryPlan, UserSortField


class IdentityUserService:
    """Read side of the identity user store.

    Point lookups return ``None`` on a miss and list lookups return ``[]``;
    only operations that need an existing user first (roles, org units)
    raise ``NotFoundError``.
    """

    def __init__(
        self,
        store: DocumentStore | None = None,
        *,
        allow_filter_bypass: bool | None = None,
    ) -> None:
        self.store = store or DocumentStore()
        self.accessors = EntityAccessors(self.store)
        self.membership = MembershipResolver(self.accessors, allow_filter_bypass=allow_filter_bypass)
        self.hierarchy = HierarchyResolver(self.store)
        self.user_query = UserQueryBuilder(self.store)

    def get(self, user_id: str, *, cancel_token: CancellationToken | None = None) -> User:
        return self.accessors.get_user(user_id, cancel_token=cancel_token)

    def find_by_normalized_user_name(
        self,
        normalized_user_name: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> User | None:
        return self.store.find_first(
            User,
            Eq("normalized_user_name", normalized_user_name),
            cancel_token=cancel_token,
        )

    def find_by_normalized_email(
        self,
        normalized_email: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> User | None:
        return self.store.find_first(
            User,
            Eq("normalized_email", normalized_email),
            cancel_token=cancel_token,
        )

    def find_by_login(
        self,
        login_provider: str,
        provider_key: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> User | None:
        predicate = ElemMatch(
            "logins",
            (Eq("login_provider", login_provider), Eq("provider_key", provider_key)),
        )
        return self.store.find_first(User, predicate, cancel_token=cancel_token)

    def list_by_claim(
        self,
        claim_type: str,
        claim_value: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        predicate = ElemMatch(
            "claims",
            (Eq("claim_type", claim_type), Eq("claim_value", claim_value)),
        )
        return self.store.find(User, QuerySpec(predicate=predicate, order_by=USER_ORDER), cancel_token=cancel_token)

    def list_by_normalized_role_name(
        self,
        normalized_role_name: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        # Direct role holders only; users who get the role through an org unit are not listed.
        role = self.accessors.find_role_by_normalized_name(normalized_role_name, cancel_token=cancel_token)
        if role is None:
            return []
        predicate = ElemMatch("roles", (Eq("role_id", role.id),))
        return self.store.find(User, QuerySpec(predicate=predicate, order_by=USER_ORDER), cancel_token=cancel_token)

    def list_users(
        self,
        filter_text: str | None = None,
        sorting: str | UserSortField | None = None,
        skip: int = 0,
        take: int | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        plan = UserQueryPlan.build(filter_text, sorting, skip, take)
        return self.user_query.list_users(plan, cancel_token=cancel_token)

    def count_users(
        self,
        filter_text: str | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> int:
        return self.user_query.count_users(UserQueryPlan(filter_text=filter_text), cancel_token=cancel_token)

    def resolve_effective_role_ids(
        self,
        user_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> set[str]:
        return self.membership.resolve_effective_role_ids(user_id, cancel_token=cancel_token)

    def get_roles(self, user_id: str, *, cancel_token: CancellationToken | None = None) -> list[Role]:
        return self.membership.get_roles(user_id, cancel_token=cancel_token)

    def get_role_names(self, user_id: str, *, cancel_token: CancellationToken | None = None) -> list[str]:
        return self.membership.get_role_names(user_id, cancel_token=cancel_token)

    def get_role_names_in_organization_units_unfiltered(
        self,
        user_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[str]:
        return self.membership.get_role_names_in_organization_units_unfiltered(
            user_id,
            cancel_token=cancel_token,
        )

    def get_organization_units(
        self,
        user_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[OrganizationUnit]:
        return self.membership.get_organization_units(user_id, cancel_token=cancel_token)

    def users_in_organization_unit(
        self,
        organization_unit_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        return self.hierarchy.users_in_organization_unit(organization_unit_id, cancel_token=cancel_token)

    def users_in_organization_units(
        self,
        organization_unit_ids: Iterable[str],
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        return self.hierarchy.users_in_organization_units(organization_unit_ids, cancel_token=cancel_token)

    def users_under_subtree(
        self,
        code_prefix: str,
        *,
        match: CodeMatch = CodeMatch.SEGMENT,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        return self.hierarchy.users_under_subtree(code_prefix, match=match, cancel_token=cancel_token)
