"""Health route."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from geolink import __version__
from geolink.api.deps import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db=Depends(get_db)):
    """Check database connectivity."""
    services = {}
    try:
        with db.connection() as conn:
            cur = conn.cursor()
            cur.execute("SELECT 1")
        services["database"] = "ok"
    except Exception as e:
        services["database"] = f"error:{e}"

    all_ok = all(v == "ok" for v in services.values())
    status = "ok" if all_ok else "degraded"
    status_code = 200 if all_ok else 503
    return JSONResponse(
        {"status": status, "version": __version__, "services": services},
        status_code=status_code,
    )
