"""Restrict the admin surface to company networks."""
from __future__ import annotations

import ipaddress
from typing import Iterable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = structlog.get_logger(__name__)

# QR scans come from anywhere
PUBLIC_PREFIXES = ("/employees/verify/", "/health", "/uploads/")


def is_public_path(path: str) -> bool:
    return any(path == prefix.rstrip("/") or path.startswith(prefix) for prefix in PUBLIC_PREFIXES)


def parse_networks(cidrs: Iterable[str]) -> list[ipaddress.IPv4Network | ipaddress.IPv6Network]:
    return [ipaddress.ip_network(cidr, strict=False) for cidr in cidrs]


def is_allowed_client(host: str | None, networks) -> bool:
    if not host:
        return False
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return host == "localhost"
    # IPv4 clients seen through an IPv6 socket, e.g. ::ffff:127.0.0.1
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        address = address.ipv4_mapped
    return any(address in network for network in networks)


class AdminNetworkMiddleware(BaseHTTPMiddleware):
    """Reject non-public requests from clients outside the allowed networks."""

    def __init__(self, app, allowed_networks: Iterable[str], enabled: bool = True) -> None:
        super().__init__(app)
        self.networks = parse_networks(allowed_networks)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next):
        if self.enabled and not is_public_path(request.url.path):
            host = request.client.host if request.client else None
            if not is_allowed_client(host, self.networks):
                logger.warning("admin_access_blocked", client=host, path=request.url.path)
                return JSONResponse(
                    status_code=403,
                    content={
                        "detail": "Administrative access is only available from authorized company networks."
                    },
                )
        return await call_next(request)
