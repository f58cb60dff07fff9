"""
In-memory cart ledger.

Keeps at most one line per identity key (item, variant, spice level);
adding a line with an existing key increases that line's quantity.
"""

from typing import Iterable, List

from spicebite.cart.money import format_minor
from spicebite.schemas.cart import CartLine
from spicebite.utils.logger import get_logger

logger = get_logger(__name__)


class CartLedger:
    """Client-side cart with quantity coalescing."""

    def __init__(self) -> None:
        self._lines: List[CartLine] = []

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def add_line(self, candidate: CartLine) -> List[CartLine]:
        """
        Add a line, merging it into an existing line with the same key.

        Args:
            candidate: Line to add.

        Returns:
            The full list of lines after the update.
        """
        for index, line in enumerate(self._lines):
            if line.identity_key == candidate.identity_key:
                self._lines[index] = line.model_copy(
                    update={"quantity": line.quantity + candidate.quantity}
                )
                logger.debug(
                    "Cart line quantity increased",
                    extra={"item_id": line.item_id, "added": candidate.quantity},
                )
                return self.lines

        self._lines.append(candidate)
        logger.debug("Cart line added", extra={"item_id": candidate.item_id})
        return self.lines

    def replace_all(self, lines: Iterable[CartLine]) -> None:
        """Replace the ledger with the backend's authoritative cart (no merge)."""
        self._lines = list(lines)
        logger.info("Cart replaced from backend", extra={"lines": len(self._lines)})

    def clear(self) -> None:
        self._lines = []

    def total(self) -> int:
        """Cart total in integer minor units."""
        return sum(line.subtotal_minor for line in self._lines)

    def total_display(self) -> str:
        return format_minor(self.total())
