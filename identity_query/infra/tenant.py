from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

tenant_id_ctx: ContextVar[str | None] = ContextVar("tenant_id", default=None)


def set_request_context(tenant_id: str | None) -> None:
    tenant_id_ctx.set(tenant_id)


def get_tenant_id() -> str | None:
    return tenant_id_ctx.get()


@contextmanager
def tenant_scope(tenant_id: str | None) -> Iterator[None]:
    token = tenant_id_ctx.set(tenant_id)
    try:
        yield
    finally:
        tenant_id_ctx.reset(token)
