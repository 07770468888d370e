# app/core/request_meta.py
import ipaddress

from fastapi import Request


def _valid_ip(value: str) -> str | None:
    value = value.strip()
    if not value:
        return None
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return None
    return value


def get_ip_address(request: Request) -> str:
    """
    Best-effort client IP.

    Order:
      1. X-Real-IP
      2. first valid entry of X-Forwarded-For
      3. the socket peer address
    """
    real_ip = _valid_ip(request.headers.get("X-Real-IP", ""))
    if real_ip:
        return real_ip

    for candidate in request.headers.get("X-Forwarded-For", "").split(","):
        ip = _valid_ip(candidate)
        if ip:
            return ip

    if request.client is not None:
        return request.client.host
    return ""


def get_request_metadata(request: Request) -> tuple[str, str]:
    """Return (ip, user_agent) for logging."""
    return get_ip_address(request), request.headers.get("User-Agent", "")
