"""
Dépendances d'authentification.
Le token vient de l'en-tête Bearer, sinon du cookie posé par le service d'auth;
il est résolu par le backend (GET /auth/me) puis transmis aux appels faits au nom de l'utilisateur.
"""
from typing import Any, Dict
import logging

from fastapi import Depends, HTTPException, Request

from storefront.auth.service import get_user_from_token
from storefront.errors import BackendError, BackendUnavailable

COOKIE_NAME = "sb_access"
SESSION_EXPIRED = "Session expirée, veuillez vous connecter"

logger = logging.getLogger(__name__)


def get_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else ""
    return token or request.cookies.get(COOKIE_NAME) or ""


async def get_current_user(request: Request) -> Dict[str, Any]:
    token = get_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    try:
        user = await get_user_from_token(token)
    except BackendUnavailable:
        raise
    except BackendError as e:
        logger.info("auth: token refusé par le backend (%s)", e.upstream_status)
        raise HTTPException(status_code=401, detail=SESSION_EXPIRED)
    if not user.get("id"):
        raise HTTPException(status_code=401, detail=SESSION_EXPIRED)
    return user


def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user
