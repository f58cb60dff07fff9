"""
Cart API client.

Keeps the backend cart and the local CartLedger in step.
"""

from typing import List

from spicebite.api.http_client import AuthenticatedClient
from spicebite.cart.ledger import CartLedger
from spicebite.cart.money import to_major
from spicebite.schemas.cart import CartLine
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


async def fetch_cart(client: AuthenticatedClient) -> List[CartLine]:
    """
    Fetch the backend's authoritative cart.

    Returns:
        Cart lines converted to minor-unit prices.
    """
    rows = await client.fetch_json(
        "GET",
        client.config.CART_PATH,
        action="fetch cart",
    )
    return [CartLine.from_backend(row) for row in rows or []]


async def sync_cart(client: AuthenticatedClient, ledger: CartLedger) -> CartLedger:
    """Replace the local ledger with the backend cart."""
    ledger.replace_all(await fetch_cart(client))
    return ledger


async def add_to_cart(
    client: AuthenticatedClient,
    ledger: CartLedger,
    line: CartLine,
) -> List[CartLine]:
    """
    Persist a line to the backend, then update the local ledger.

    When the backend answers with the whole cart, the ledger is replaced
    with it; otherwise the line is coalesced locally. A rejected add
    leaves the ledger untouched.

    Raises:
        ApiError, NetworkError, SessionExpired: If the backend did not
            accept the line.
    """
    payload = await client.fetch_json(
        "POST",
        client.config.CART_PATH,
        action="add cart item",
        json={
            "food_item_id": line.item_id,
            "size_string": line.variant_label,
            "spice_level": line.spice_level,
            "quantity": line.quantity,
            "price": str(to_major(line.unit_price_minor)),
        },
    )

    if isinstance(payload, dict) and isinstance(payload.get("items"), list):
        payload = payload["items"]

    if isinstance(payload, list):
        ledger.replace_all(CartLine.from_backend(row) for row in payload)
        return ledger.lines

    return ledger.add_line(line)


async def clear_cart(client: AuthenticatedClient, ledger: CartLedger) -> None:
    await client.fetch_json(
        "DELETE",
        client.config.CART_CLEAR_PATH,
        action="clear cart",
    )
    ledger.clear()
    logger.info("Cart cleared")
