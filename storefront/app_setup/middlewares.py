"""
Middlewares de la vitrine.
- Session signée: porte le panier local entre deux pages (aucun stockage serveur).
- CORS et hôtes de confiance depuis la config; en-têtes X-Forwarded-* du proxy.
- Réponses des tentatives de paiement et de l'admin jamais mises en cache.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from storefront.config import ALLOWED_HOSTS, COOKIE_SECURE, CORS_ORIGINS, SESSION_SECRET_KEY

SESSION_COOKIE = "storefront_session"
SESSION_MAX_AGE = 14 * 24 * 3600
NO_CACHE_PREFIXES = ("/admin", "/api/v1/checkout")
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _trusted_hosts() -> list:
    # CORS ouvert (dev) -> pas de filtrage d'hôte non plus
    return ["*"] if "*" in CORS_ORIGINS else list(ALLOWED_HOSTS)


def register_session_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        SessionMiddleware,
        secret_key=SESSION_SECRET_KEY,
        session_cookie=SESSION_COOKIE,
        max_age=SESSION_MAX_AGE,
        same_site="lax",
        https_only=COOKIE_SECURE,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=_trusted_hosts())
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])


def register_no_cache_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def no_cache_for_payments(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith(NO_CACHE_PREFIXES):
            response.headers.update(NO_CACHE_HEADERS)
        return response
