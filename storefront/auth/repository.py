from typing import Any, Dict
import storefront.infra.api_client as api_client

# module storefront.auth.repository
async def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """GET /auth/me -> {id, email, name?, role?, user_metadata?} (accepte aussi {data: {...}} / {user: {...}})."""
    data = await api_client.get_api_client().get("/auth/me", token=access_token)
    if isinstance(data, dict):
        for key in ("data", "user"):
            if isinstance(data.get(key), dict):
                return data[key]
        return data
    return {}
