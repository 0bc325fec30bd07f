"""
Lifespan de la vitrine.
Démarrage: connexion du limiteur de débit (Redis, ou fakeredis en tests).
Arrêt: fermeture du limiteur et du client HTTP partagé vers le backend.

Variables:
- DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: pas de limiteur Redis
- USE_FAKE_REDIS_FOR_TESTS=1: fakeredis en mémoire
- RATE_LIMIT_REDIS_URL: URL Redis (défaut redis://127.0.0.1:6379/0)
- LOCAL_RATE_LIMIT_FALLBACK=1: le limiteur mémoire prend le relais si Redis échoue
"""
from contextlib import asynccontextmanager
import logging
import os

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from storefront.infra.api_client import close_api_client

logger = logging.getLogger("uvicorn.error")

DEFAULT_REDIS_URL = "redis://127.0.0.1:6379/0"


def _limiter_redis():
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        from fakeredis.aioredis import FakeRedis
        return FakeRedis(decode_responses=True)
    url = os.getenv("RATE_LIMIT_REDIS_URL", DEFAULT_REDIS_URL)
    return redis.from_url(url, encoding="utf-8", decode_responses=True)


async def start_rate_limiter(app: FastAPI) -> None:
    """Positionne app.state.rate_limit_enabled; un Redis absent désactive la limite sans bloquer le démarrage."""
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("rate limiting disabled (DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS)")
        return
    try:
        await FastAPILimiter.init(_limiter_redis())
    except Exception as e:
        fallback = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        app.state.rate_limit_enabled = fallback
        logger.warning("rate limiter redis init failed (%s), local fallback=%s", e, fallback)
        return
    app.state.rate_limit_enabled = True
    logger.info("rate limiting enabled (redis)")


async def stop_rate_limiter() -> None:
    if getattr(FastAPILimiter, "redis", None) is None:
        return
    try:
        await FastAPILimiter.close()
    except Exception as e:
        logger.warning("rate limiter close failed: %s", e)
    FastAPILimiter.redis = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    await start_rate_limiter(app)
    try:
        yield
    finally:
        await stop_rate_limiter()
        await close_api_client()
        logger.info("storefront shutdown: backend client closed")
