from __future__ import annotations

from identity_query.infra.cancellation import OperationCancelledError


class IdentityQueryError(Exception):
    pass


class NotFoundError(IdentityQueryError):
    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidQueryError(IdentityQueryError):
    pass


class FilterBypassDeniedError(IdentityQueryError):
    pass


__all__ = [
    "FilterBypassDeniedError",
    "IdentityQueryError",
    "InvalidQueryError",
    "NotFoundError",
    "OperationCancelledError",
]
