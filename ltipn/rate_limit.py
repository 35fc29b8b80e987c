"""Rate limiting global / Global rate limiter.

Utilise slowapi pour limiter les requetes par IP client (login), en tenant
compte de X-Forwarded-For derriere le reverse proxy.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request


def client_ip(request: Request) -> str:
    """IP client, premiere entree de X-Forwarded-For si presente / Client IP, first X-Forwarded-For hop if any."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=client_ip)
