from urllib.parse import urlparse
from typing import Any, Dict
import time

import storefront.infra.api_client as api_client
from storefront.config import API_BASE_URL, RAZORPAY_KEY_ID
from storefront.errors import BackendError, BackendUnavailable

async def health_backend_info() -> Dict[str, Any]:
    """
    Joignabilité du backend REST (GET /health relatif à API_BASE_URL).
    Une réponse d'erreur HTTP prouve que le backend répond: reachable=True, ok=False.
    """
    parsed = urlparse(API_BASE_URL)
    info: Dict[str, Any] = {
        "api_base_url": API_BASE_URL,
        "hostname": parsed.hostname,
        "reachable": False,
        "ok": False,
        "latency_ms": None,
        "error": None,
        "gateway_key_configured": bool(RAZORPAY_KEY_ID),
    }
    started = time.perf_counter()
    try:
        await api_client.get_api_client().get("/health")
        info["reachable"] = True
        info["ok"] = True
    except BackendUnavailable as e:
        info["error"] = e.message
    except BackendError as e:
        info["reachable"] = True
        info["error"] = e.message
    info["latency_ms"] = round((time.perf_counter() - started) * 1000, 1)
    return info
