from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field

from spicebite.schemas.cart import CartLine


class FromCart(BaseModel):
    """Checkout of the whole cart; the cart is cleared after the order."""

    kind: Literal["cart"] = "cart"
    lines: List[CartLine]


class FromDirectBuy(BaseModel):
    """Checkout of a single item straight from its detail page."""

    kind: Literal["direct"] = "direct"
    line: CartLine


CheckoutOrigin = Annotated[Union[FromCart, FromDirectBuy], Field(discriminator="kind")]


class DeliveryLocation(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    display_name: str = Field(min_length=1)
