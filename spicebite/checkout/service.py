"""
Checkout service.

Builds and places an order from a checkout origin:
- FromCart: every cart line; the cart is cleared once the order exists
- FromDirectBuy: a single item; the cart is left alone
"""

from typing import Any, Dict, List, Optional

from spicebite.api import cart_client, order_client
from spicebite.api.http_client import AuthenticatedClient
from spicebite.cart.ledger import CartLedger
from spicebite.cart.money import to_major
from spicebite.core.errors import ApiError, NetworkError, SessionExpired, ValidationError
from spicebite.schemas.cart import CartLine
from spicebite.schemas.checkout import CheckoutOrigin, DeliveryLocation, FromCart, FromDirectBuy
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DESCRIPTION = "Paid via eSewa"


def origin_lines(origin: CheckoutOrigin) -> List[CartLine]:
    if isinstance(origin, FromCart):
        return list(origin.lines)
    if isinstance(origin, FromDirectBuy):
        return [origin.line]
    raise ValidationError(f"Unknown checkout origin: {type(origin).__name__}")


def from_ledger(ledger: CartLedger) -> FromCart:
    return FromCart(lines=ledger.lines)


def build_order_payload(
    origin: CheckoutOrigin,
    location: Optional[DeliveryLocation],
    *,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the order request body.

    Amounts are summed in integer minor units and converted to decimal
    strings only in the payload.

    Raises:
        ValidationError: If there is nothing to order or no delivery location.
    """
    lines = origin_lines(origin)
    if not lines:
        raise ValidationError("Cannot check out an empty cart")

    if location is None:
        raise ValidationError("A delivery location is required")

    total_minor = sum(line.subtotal_minor for line in lines)

    return {
        "description": description or DEFAULT_DESCRIPTION,
        "latitude": location.latitude,
        "longitude": location.longitude,
        "delivery_address": location.display_name,
        "total_amount": str(to_major(total_minor)),
        "items": [
            {
                "food_item": line.item_id,
                "quantity": line.quantity,
                "price": str(to_major(line.unit_price_minor)),
                "size_string": line.variant_label,
                "spice_level": line.spice_level,
            }
            for line in lines
        ],
    }


async def place_order(
    client: AuthenticatedClient,
    origin: CheckoutOrigin,
    location: Optional[DeliveryLocation],
    *,
    ledger: Optional[CartLedger] = None,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Place an order and, for cart checkouts, clear the cart.

    Args:
        client: Authenticated client.
        origin: Where the checkout started.
        location: Delivery location picked by the user.
        ledger: Local cart to clear after a cart checkout.
        description: Order note.

    Returns:
        Created order.

    Raises:
        ValidationError: On invalid checkout input.
        ApiError, NetworkError, SessionExpired: If the order was not created.
            Once the order exists, a failed cart clear is logged and the
            local ledger is cleared instead.
    """
    payload = build_order_payload(origin, location, description=description)
    order = await order_client.create_order(client, payload)

    logger.info("Order placed", extra={"order_id": order.get("id") if order else None})

    if isinstance(origin, FromCart):
        ledger = ledger if ledger is not None else CartLedger()
        try:
            await cart_client.clear_cart(client, ledger)
        except (ApiError, NetworkError, SessionExpired):
            # The order exists; a stale backend cart is resynced on next fetch
            logger.warning(
                "Order placed but backend cart was not cleared",
                extra={"order_id": order.get("id") if order else None},
            )
            ledger.clear()

    return order
