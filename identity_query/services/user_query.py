from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from identity_query.domain.models import User
from identity_query.domain.query import MATCH_ALL, Contains, OrderBy, Predicate, QuerySpec, or_
from identity_query.infra.cancellation import CancellationToken
from identity_query.infra.document_store import DocumentStore
from identity_query.services.errors import InvalidQueryError

FILTERED_FIELDS = ("user_name", "email", "name", "surname")


class UserSortField(StrEnum):
    USER_NAME = "user_name"
    NORMALIZED_USER_NAME = "normalized_user_name"
    EMAIL = "email"
    NAME = "name"
    SURNAME = "surname"
    CREATED_AT = "created_at"

    @classmethod
    def parse(cls, sorting: str | None) -> UserSortField:
        """Resolve a caller supplied sort expression such as ``"UserName"`` or ``"email asc"``."""
        if sorting is None or not sorting.strip():
            return cls.USER_NAME
        parts = sorting.split()
        if len(parts) == 2 and parts[1].lower() == "asc":
            parts = parts[:1]
        if len(parts) != 1 or "," in parts[0]:
            raise InvalidQueryError(f"unsupported sorting: {sorting!r}")
        key = parts[0].replace("_", "").lower()
        for item in cls:
            if item.value.replace("_", "") == key:
                return item
        raise InvalidQueryError(f"unknown sort field: {parts[0]!r}")


def user_filter_predicate(filter_text: str | None) -> Predicate:
    # Case sensitivity follows the store collation.
    if filter_text is None or not filter_text.strip():
        return MATCH_ALL
    return or_(*(Contains(field_name, filter_text) for field_name in FILTERED_FIELDS))


@dataclass(frozen=True)
class UserQueryPlan:
    filter_text: str | None = None
    sort_field: UserSortField = UserSortField.USER_NAME
    skip: int = 0
    take: int | None = None

    def __post_init__(self) -> None:
        if self.skip < 0:
            raise InvalidQueryError("skip must be non-negative")
        if self.take is not None and self.take < 0:
            raise InvalidQueryError("take must be non-negative")

    @classmethod
    def build(
        cls,
        filter_text: str | None = None,
        sorting: str | UserSortField | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> UserQueryPlan:
        sort_field = sorting if isinstance(sorting, UserSortField) else UserSortField.parse(sorting)
        return cls(filter_text=filter_text, sort_field=sort_field, skip=skip, take=take)

    @property
    def predicate(self) -> Predicate:
        return user_filter_predicate(self.filter_text)

    def list_spec(self) -> QuerySpec:
        return QuerySpec(
            predicate=self.predicate,
            order_by=(OrderBy(self.sort_field.value),),
            skip=self.skip,
            take=self.take,
        )


class UserQueryBuilder:
    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store = store or DocumentStore()

    def list_users(
        self,
        plan: UserQueryPlan,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[User]:
        return self.store.find(User, plan.list_spec(), cancel_token=cancel_token)

    def count_users(
        self,
        plan: UserQueryPlan,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> int:
        return self.store.count(User, plan.predicate, cancel_token=cancel_token)
