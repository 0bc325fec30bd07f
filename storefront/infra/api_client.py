"""
Client HTTP asynchrone vers le backend REST (source de vérité: paniers, commandes, paiements).
- Une instance partagée (get_api_client), fermée au shutdown par le lifespan.
- Le token utilisateur est passé par requête (Authorization: Bearer), jamais stocké sur l'instance.
- Les erreurs sont traduites en BackendError / BackendUnavailable avec le message le plus précis disponible.
"""
from typing import Any, Dict, Optional
import logging

import httpx

from storefront.config import API_BASE_URL, API_TIMEOUT_SECONDS
from storefront.errors import BackendError, BackendUnavailable

logger = logging.getLogger(__name__)

UNAVAILABLE_STATUSES = {502, 503, 504}


def error_message(payload: Any, status_code: int) -> str:
    """
    Extrait un message lisible d'un corps d'erreur backend.
    - {"message": "..."} ou {"message": ["a", "b"]} (validation) -> "a. b"
    - {"detail": "..."} / {"error": "..."}
    - Fallback: "Erreur serveur (<status>)"
    """
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, list) and value:
                return ". ".join(str(v) for v in value)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()[:300]
    return f"Erreur serveur ({status_code})"


class BackendClient:
    def __init__(self, base_url: str = API_BASE_URL, timeout: float = API_TIMEOUT_SECONDS, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            response = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TransportError as e:
            logger.warning("backend %s %s unreachable: %s", method, path, e)
            raise BackendUnavailable("Erreur réseau. Vérifiez votre connexion.", upstream_status=None) from e

        payload = _decode(response)
        if response.is_success:
            return payload

        message = error_message(payload, response.status_code)
        logger.info("backend %s %s -> %s: %s", method, path, response.status_code, message)
        if response.status_code in UNAVAILABLE_STATUSES:
            raise BackendUnavailable(message, upstream_status=response.status_code, payload=payload)
        raise BackendError(message, upstream_status=response.status_code, payload=payload)

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


_api_client: Optional[BackendClient] = None


def get_api_client() -> BackendClient:
    global _api_client
    if _api_client is None:
        _api_client = BackendClient()
    return _api_client


async def close_api_client() -> None:
    global _api_client
    if _api_client is not None:
        await _api_client.aclose()
        _api_client = None
