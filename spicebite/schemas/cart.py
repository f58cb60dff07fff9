from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, Field

from spicebite.cart.money import to_minor

IdentityKey = Tuple[str, str, str]


class CartLine(BaseModel):
    item_id: Union[int, str]
    variant_label: str = ""
    spice_level: str = ""
    quantity: int = Field(gt=0)
    unit_price_minor: int = Field(ge=0)
    name: Optional[str] = None

    @property
    def identity_key(self) -> IdentityKey:
        return (str(self.item_id), self.variant_label, self.spice_level)

    @property
    def subtotal_minor(self) -> int:
        return self.quantity * self.unit_price_minor

    @classmethod
    def from_backend(cls, row: Dict[str, Any]) -> "CartLine":
        """
        Build a line from a backend cart row.

        Rows carry the food item either nested or as a bare id, and the
        price either directly, as ``food_price`` or on the chosen size.
        """
        food = row.get("food_item")
        if isinstance(food, dict):
            item_id = food.get("id")
            name = food.get("name")
        else:
            item_id = food if food is not None else row.get("item_id")
            name = row.get("name")

        size = row.get("size") if isinstance(row.get("size"), dict) else {}
        price = row.get("price") or row.get("food_price") or size.get("price") or 0

        return cls(
            item_id=item_id,
            variant_label=row.get("size_string") or "",
            spice_level=row.get("spice_level") or "",
            quantity=row.get("quantity") or 1,
            unit_price_minor=to_minor(price),
            name=name,
        )
