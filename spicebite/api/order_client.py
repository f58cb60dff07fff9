"""
Order API client.

Handles order history, order details, placement and cancellation.
"""

from typing import Any, Dict, List, Union

from spicebite.api.http_client import AuthenticatedClient
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)

OrderId = Union[int, str]


async def list_orders(client: AuthenticatedClient) -> List[Dict[str, Any]]:
    return await client.fetch_json(
        "GET",
        client.config.ORDERS_PATH,
        action="fetch orders",
    )


async def get_order(client: AuthenticatedClient, order_id: OrderId) -> Dict[str, Any]:
    return await client.fetch_json(
        "GET",
        f"{client.config.ORDERS_PATH}{order_id}/",
        action="fetch order details",
    )


async def create_order(client: AuthenticatedClient, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Place an order.

    Args:
        client: Authenticated client.
        payload: Order body as built by the checkout service.

    Returns:
        Created order.
    """
    logger.info(
        "Placing order",
        extra={"items": len(payload.get("items", []))},
    )

    return await client.fetch_json(
        "POST",
        client.config.ORDERS_PATH,
        action="create order",
        json=payload,
    )


async def cancel_order(client: AuthenticatedClient, order_id: OrderId) -> Dict[str, Any]:
    logger.info("Cancelling order", extra={"order_id": order_id})

    return await client.fetch_json(
        "POST",
        client.config.ORDER_CANCEL_PATH.format(order_id=order_id),
        action="cancel order",
    )
