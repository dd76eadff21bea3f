from __future__ import annotations

from fastapi import FastAPI, HTTPException

from identity_query.api.routers import identity
from identity_query.infra.db import check_db_ready
from identity_query.infra.logger import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="identity-query",
    description="Read and query layer over the identity user document store.",
    version="0.1.0",
)

app.include_router(identity.router, prefix="/api/identity", tags=["identity"])

logger.info("app.configured", routes=len(app.routes))


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/readyz")
def readyz() -> dict[str, object]:
    db_ok = check_db_ready()
    checks = {"db": "ok" if db_ok else "fail"}
    if not db_ok:
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
