"""
In-memory sliding-window limiter for the unauthenticated auth endpoints.

State is per process: {client ip: [request timestamps inside the window]}.
An ip whose window has emptied is dropped from the store.
"""
import logging
import time
from typing import Dict, List, Optional

from fastapi import Depends, Request, HTTPException, status

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

rate_limit_store: Dict[str, List[float]] = {}
_last_sweep = {"at": 0.0}


def get_client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else "unknown"


def _recent_hits(key: str, cutoff: float) -> List[float]:
    hits = [ts for ts in rate_limit_store.get(key, ()) if ts > cutoff]
    if hits:
        rate_limit_store[key] = hits
    else:
        rate_limit_store.pop(key, None)
    return hits


def sweep_expired(cutoff: float) -> int:
    """Drop every ip with no hits after `cutoff`; returns how many were dropped."""
    stale = [key for key, hits in rate_limit_store.items() if not hits or hits[-1] <= cutoff]
    for key in stale:
        del rate_limit_store[key]
    return len(stale)


def check_rate_limit(
    request: Request,
    max_requests: int = 10,
    window_seconds: int = 60,
    now: Optional[float] = None,
) -> None:
    """
    Record one hit for the caller's ip.

    Raises:
        HTTPException: 429 once the ip already has max_requests hits in the window
    """
    key = get_client_ip(request)
    now = time.time() if now is None else now
    if now - _last_sweep["at"] >= window_seconds:
        sweep_expired(now - window_seconds)
        _last_sweep["at"] = now
    hits = _recent_hits(key, now - window_seconds)

    if len(hits) >= max_requests:
        logger.warning(f"Auth rate limit hit: ip={key}, hits={len(hits)}, window={window_seconds}s")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many attempts. Try again in {window_seconds} seconds."
        )

    rate_limit_store[key] = hits + [now]


def auth_rate_limit(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Dependency applied to register and login."""
    check_rate_limit(
        request,
        max_requests=settings.LOGIN_RATE_LIMIT,
        window_seconds=settings.LOGIN_RATE_WINDOW_SECONDS,
    )
