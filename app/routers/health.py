# app/routers/health.py
from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/healthz")
def healthz():
    """Liveness check."""
    return {"status": "ok"}


@router.get("/readiness")
def readiness():
    """Readiness check."""
    return {"status": "ok"}
