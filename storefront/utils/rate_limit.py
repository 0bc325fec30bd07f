"""
Limitation de débit des endpoints sensibles (lancement de checkout, retry, remboursement).
- Redis (fastapi-limiter) quand le lifespan l'a initialisé.
- LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire, par processus.
- Sinon: aucune limite (Redis absent ne bloque jamais un paiement).
Clé: hash du token utilisateur (ou IP) + chemin.
"""
from collections import defaultdict, deque
from typing import Any, Deque, Dict
from urllib.parse import urlparse
import hashlib
import logging
import os
import time

from fastapi import HTTPException, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from storefront.utils.security import get_token

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = "Trop de requêtes, réessayez dans quelques instants"


def _user_key_from_request(req: Request) -> str:
    token = get_token(req)
    path = req.url.path
    if token:
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{digest}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"


class LocalRateLimiter:
    """Fenêtre glissante en mémoire: au plus `times` appels par `seconds` et par clé."""

    def __init__(self):
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    def hit(self, key: str, times: int, seconds: int) -> float:
        """Enregistre l'appel; renvoie 0 si accepté, sinon le délai d'attente en secondes."""
        now = time.monotonic()
        hits = self._hits[key]
        while hits and now - hits[0] >= seconds:
            hits.popleft()
        if len(hits) >= times:
            return seconds - (now - hits[0])
        hits.append(now)
        return 0.0


def _local_limiter(request: Request) -> LocalRateLimiter:
    limiter = getattr(request.app.state, "local_rate_limiter", None)
    if limiter is None:
        limiter = LocalRateLimiter()
        request.app.state.local_rate_limiter = limiter
    return limiter


async def _identifier(request: Request) -> str:
    return _user_key_from_request(request)


def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            wait = _local_limiter(request).hit(_user_key_from_request(request), times, seconds)
            if wait > 0:
                raise HTTPException(status_code=429, detail=TOO_MANY_REQUESTS, headers={"Retry-After": str(int(wait) + 1)})
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return
        if getattr(FastAPILimiter, "redis", None) is None:
            return
        try:
            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception as e:
            # Redis tombé après le démarrage: on laisse passer
            logger.warning("rate limit skipped on %s: %s", request.url.path, e)
    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    info: Dict[str, Any] = {
        "enabled": bool(enabled) if enabled is not None else None,
        "ready": limiter_ready,
        "backend": "redis" if limiter_ready else None,
    }
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if limiter_ready and redis_url:
        parsed = urlparse(redis_url)
        info["redis"] = {"scheme": parsed.scheme, "host": parsed.hostname, "port": parsed.port}
    return info
