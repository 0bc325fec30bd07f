from typing import Any, Dict, Optional

from .repository import get_user_from_access_token as _repo_get_user_from_token


def determine_role(raw: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None) -> str:
    role_lower = str(raw.get("role") or (metadata or {}).get("role") or "").lower()
    if role_lower == "admin":
        return "admin"
    return "user"


async def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur renvoyé par le backend (GET /auth/me):
    - Retourne {id, email, name, phone, metadata, role, token}
    - Le token est conservé pour les appels backend faits au nom de l'utilisateur
    """
    raw = await _repo_get_user_from_token(access_token)
    metadata = raw.get("user_metadata") or raw.get("metadata") or {}
    return {
        "id": str(raw.get("id") or raw.get("_id") or ""),
        "email": raw.get("email"),
        "name": raw.get("name") or metadata.get("full_name"),
        "phone": raw.get("phone") or metadata.get("phone"),
        "metadata": metadata,
        "role": determine_role(raw, metadata),
        "token": access_token,
    }
