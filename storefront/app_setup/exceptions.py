"""
Gestionnaires d’exceptions.
- StorefrontError: JSON {"detail", "code", ...} avec le status_code porté par l'erreur.
- HTTPException: réponse JSON FastAPI standard.
- Exception inattendue: journalisée (logger.exception), 500 générique.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront.errors import BackendError, StorefrontError

# statuts backend relayés tels quels au client
PASSTHROUGH_STATUSES = (401, 403, 404)

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        status_code = exc.status_code
        if isinstance(exc, BackendError) and exc.upstream_status in PASSTHROUGH_STATUSES:
            status_code = exc.upstream_status
        if status_code >= 500:
            logger.warning("%s %s -> %s %s: %s", request.method, request.url.path, status_code, exc.code, exc.message)
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Erreur inattendue %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Erreur interne", "code": "internal_error"})
