# app/core/action_log.py
import logging

from fastapi import Request

from app.core.request_meta import get_request_metadata

logger = logging.getLogger("uvicorn.error")


def _fields(
    request: Request,
    action: str,
    status: str,
    details: str,
    user_id: str | None,
) -> dict[str, str]:
    ip, user_agent = get_request_metadata(request)
    return {
        "user_id": user_id or "",
        "action": action,
        "status": status,
        "details": details,
        "user_agent": user_agent,
        "ip": ip,
        "request_id": getattr(request.state, "request_id", ""),
    }


def log_success(
    request: Request,
    action: str,
    details: str,
    user_id: object | None = None,
) -> None:
    """Record a completed user action."""
    fields = _fields(request, action, "success", details, str(user_id) if user_id else None)
    logger.info("%s: %s", action, details, extra=fields)


def log_error(
    request: Request,
    action: str,
    code: str,
    details: str,
    err: BaseException | None = None,
    user_id: object | None = None,
) -> None:
    """
    Record a failed user action.

    The wrapped cause goes to the log only, never to the client.
    """
    fields = _fields(request, action, code, details, str(user_id) if user_id else None)
    if err is not None:
        logger.error("%s failed (%s): %s: %s", action, code, details, err, extra=fields)
    else:
        logger.warning("%s failed (%s): %s", action, code, details, extra=fields)
