from __future__ import annotations

from collections.abc import Iterable

from identity_query.domain.models import OrganizationUnit, User
from identity_query.domain.organization_units import CodeMatch, subtree_predicate
from identity_query.domain.query import ElemMatch, OrderBy, QuerySpec, in_
from identity_query.infra.cancellation import CancellationToken
from identity_query.infra.document_store import DocumentStore

USER_ORDER = (OrderBy("user_name"),)


class HierarchyResolver:
    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store = store or DocumentStore()

    def organization_unit_ids_in_subtree(
        self,
        code_prefix: str,
        *,
        match: CodeMatch = CodeMatch.SEGMENT,
        cancel_token: CancellationToken | None = None,
    ) -> list[str]:
        return self.store.find_ids(
            OrganizationUnit,
            subtree_predicate(code_prefix, match),
            cancel_token=cancel_token,
        )

    def users_in_organization_units(
        self,
        organization_unit_ids: Iterable[str],
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        wanted = set(organization_unit_ids)
        if not wanted:
            return []
        predicate = ElemMatch("organization_units", (in_("organization_unit_id", wanted),))
        return self.store.find(
            User,
            QuerySpec(predicate=predicate, order_by=USER_ORDER),
            cancel_token=cancel_token,
        )

    def users_in_organization_unit(
        self,
        organization_unit_id: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        return self.users_in_organization_units([organization_unit_id], cancel_token=cancel_token)

    def users_under_subtree(
        self,
        code_prefix: str,
        *,
        match: CodeMatch = CodeMatch.SEGMENT,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        organization_unit_ids = self.organization_unit_ids_in_subtree(
            code_prefix,
            match=match,
            cancel_token=cancel_token,
        )
        return self.users_in_organization_units(organization_unit_ids, cancel_token=cancel_token)
