from __future__ import annotations

import os
from collections.abc import Iterable

from identity_query.domain.models import OrganizationUnit, Role, User
from identity_query.infra.cancellation import CancellationToken
from identity_query.services.accessors import EntityAccessors
from identity_query.services.errors import FilterBypassDeniedError

ALLOW_FILTER_BYPASS = os.getenv("IDENTITY_ALLOW_FILTER_BYPASS", "true").lower() in {"1", "true", "yes"}


def union_role_ids(user: User, organization_units: Iterable[OrganizationUnit]) -> set[str]:
    inherited = {role_id for unit in organization_units for role_id in unit.role_ids}
    return user.role_ids | inherited


class MembershipResolver:
    """Effective roles of a user: direct roles plus roles granted by its org units.

    Every call reloads the user and its org units; nothing is cached. The user
    and the org units are read by separate queries, so a membership change in
    between can show up in one read and not the other.
    """

    def __init__(
        self,
        accessors: EntityAccessors | None = None,
        *,
        allow_filter_bypass: bool | None = None,
    ) -> None:
        self.accessors = accessors or EntityAccessors()
        self.allow_filter_bypass = ALLOW_FILTER_BYPASS if allow_filter_bypass is None else allow_filter_bypass

    def effective_role_ids(
        self,
        user: User,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> set[str]:
        organization_units = self.accessors.get_organization_units_by_ids(
            user.organization_unit_ids,
            cancel_token=cancel_token,
        )
        return union_role_ids(user, organization_units)

    def resolve_effective_role_ids(
        self,
        user_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> set[str]:
        user = self.accessors.get_user(user_id, cancel_token=cancel_token)
        return self.effective_role_ids(user, cancel_token=cancel_token)

    def get_roles(
        self,
        user_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[Role]:
        role_ids = self.resolve_effective_role_ids(user_id, cancel_token=cancel_token)
        return self.accessors.get_roles_by_ids(role_ids, cancel_token=cancel_token)

    def get_role_names(
        self,
        user_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[str]:
        return [role.name for role in self.get_roles(user_id, cancel_token=cancel_token)]

    def get_organization_units(
        self,
        user_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[OrganizationUnit]:
        user = self.accessors.get_user(user_id, cancel_token=cancel_token)
        return self.accessors.get_organization_units_by_ids(
            user.organization_unit_ids,
            cancel_token=cancel_token,
        )

    def get_role_names_in_organization_units_unfiltered(
        self,
        user_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[str]:
        """Names of the roles granted through the user's org units only.

        The org unit and role reads skip the store's data filters (tenant,
        soft delete), so the result can name units and roles the caller would
        not otherwise see. Direct roles of the user are not included.
        """
        if not self.allow_filter_bypass:
            raise FilterBypassDeniedError("unfiltered org unit role lookup is disabled")
        user = self.accessors.get_user(user_id, cancel_token=cancel_token)
        organization_units = self.accessors.get_organization_units_by_ids(
            user.organization_unit_ids,
            cancel_token=cancel_token,
            bypass_filters=True,
        )
        role_ids = {role_id for unit in organization_units for role_id in unit.role_ids}
        roles = self.accessors.get_roles_by_ids(role_ids, cancel_token=cancel_token, bypass_filters=True)
        return [role.name for role in roles]
