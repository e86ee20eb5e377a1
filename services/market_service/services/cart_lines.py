"""
Client-side cart aggregation.

Pure data structures with no database dependencies. A ``LocalCart`` models
the cart a shopper builds before signing in; its payload is what the client
submits to ``/cart/merge`` on login or straight to ``/orders`` at checkout.
Stock is never checked here, only when the order is placed.
"""

import uuid
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CartLine:
    product_id: uuid.UUID
    quantity: int


class LocalCart:
    """Insertion-ordered (product, quantity) lines keyed by product id."""

    def __init__(self, lines: Optional[Iterable[CartLine]] = None):
        self._quantities: dict[uuid.UUID, int] = {}
        for line in lines or ():
            self.add_item(line.product_id, line.quantity)

    def add_item(self, product_id: uuid.UUID, quantity: int = 1) -> CartLine:
        """Add ``quantity`` units, growing the existing line if there is one."""
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        self._quantities[product_id] = self._quantities.get(product_id, 0) + quantity
        return CartLine(product_id, self._quantities[product_id])

    def remove_item(self, product_id: uuid.UUID) -> None:
        """Drop the whole line for ``product_id``."""
        self._quantities.pop(product_id, None)

    def clear(self) -> None:
        self._quantities.clear()

    @property
    def lines(self) -> list[CartLine]:
        return [CartLine(pid, qty) for pid, qty in self._quantities.items()]

    @property
    def total_quantity(self) -> int:
        return sum(self._quantities.values())

    def quantity_of(self, product_id: uuid.UUID) -> int:
        return self._quantities.get(product_id, 0)

    def to_payload(self) -> list[dict]:
        return [
            {"product_id": str(pid), "quantity": qty}
            for pid, qty in self._quantities.items()
        ]

    def __len__(self) -> int:
        return len(self._quantities)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._quantities


def merge_quantities(
    server: Mapping[uuid.UUID, int],
    local: Iterable[CartLine],
) -> dict[uuid.UUID, int]:
    """
    Merge a client-local cart into server quantities.

    Quantities add up per product (server + local), they are not maxed.
    Server ordering is kept; products only in the local cart are appended.
    """
    merged = dict(server)
    for line in local:
        merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
    return merged


def collapse_lines(lines: Iterable[CartLine]) -> list[CartLine]:
    """Fold repeated product ids into one line each, summing quantities."""
    return LocalCart(lines).lines
