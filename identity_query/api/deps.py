from __future__ import annotations

from typing import Annotated

from fastapi import Header

from identity_query.infra.tenant import set_request_context


async def bind_tenant(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> str | None:
    tenant_id = x_tenant_id.strip() if x_tenant_id else None
    set_request_context(tenant_id or None)
    return tenant_id or None
