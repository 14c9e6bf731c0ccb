"""
Client address helpers
"""

from typing import Iterable

from starlette.requests import Request


def get_client_ip(request: Request) -> str:
    """Extract the client address, honouring proxy headers"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


def is_ip_whitelisted(ip: str, whitelist: Iterable[str]) -> bool:
    return ip in set(whitelist)


def is_ip_blacklisted(ip: str, blacklist: Iterable[str]) -> bool:
    return ip in set(blacklist)
