"""Request-scoped helpers shared by the routes."""

from typing import Optional

from fastapi import Header, Request

from services.context import ServiceContext


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


def get_client_ip(request: Request) -> str:
    """First x-forwarded-for hop, then x-real-ip, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def get_admin_secret(x_admin_secret: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_admin_secret


def get_admin_email(x_admin_email: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_admin_email
