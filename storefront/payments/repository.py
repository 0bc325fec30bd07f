from typing import Any, Dict, Optional
import logging

import storefront.infra.api_client as api_client

logger = logging.getLogger(__name__)

# module storefront.payments.repository
async def create_gateway_order(token: Optional[str], body: Dict[str, Any]) -> Dict[str, Any]:
    """POST /payments/gateway-order -> {id|gatewayOrderId, amount, currency, key?}"""
    return await api_client.get_api_client().post("/payments/gateway-order", token=token, json=body)


async def verify_payment(token: Optional[str], body: Dict[str, Any]) -> Dict[str, Any]:
    """POST /payments/verify -> {verified: bool, order?}. Le secret de signature reste au backend."""
    return await api_client.get_api_client().post("/payments/verify", token=token, json=body)


async def request_refund(token: Optional[str], order_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
    return await api_client.get_api_client().post(f"/payments/{order_id}/refund", token=token, json=body)


async def fetch_refund(token: Optional[str], order_id: str, refund_id: str) -> Dict[str, Any]:
    return await api_client.get_api_client().get(f"/payments/{order_id}/refunds/{refund_id}", token=token)
