# ordertrack/ordering/cart.py
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from ..errors import InvalidInputError
from ..records import OrderItem
from ..validation import is_present


# largest value an SQL BIGINT column holds
MAX_QUANTITY = 2**63 - 1


def _as_quantity(raw: Any) -> int | None:
    # bools are ints in Python; "2" from a form is not
    if isinstance(raw, bool) or not isinstance(raw, int) or raw > MAX_QUANTITY:
        return None
    return raw


def _as_price(raw: Any) -> float | None:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    try:
        value = float(raw)
    except OverflowError:
        return None
    # JSON bodies may carry NaN or Infinity
    return value if math.isfinite(value) else None


def load_items(raw_items: Sequence[Dict[str, Any]] | None) -> Tuple[OrderItem, ...]:
    """Validate client item dicts into OrderItem records, collecting every problem."""
    if not raw_items:
        raise InvalidInputError("Order must contain at least one item")

    errors: List[str] = []
    items: List[OrderItem] = []
    for i, line in enumerate(raw_items, start=1):
        if not isinstance(line, dict):
            errors.append(f"items[{i}]: must be an object")
            continue

        name = line.get("name")
        qty = _as_quantity(line.get("quantity"))
        price = _as_price(line.get("price"))
        description = line.get("description")

        if not is_present(name) or not isinstance(name, str):
            errors.append(f"items[{i}].name: is required")
        if qty is None or qty <= 0:
            errors.append(f"items[{i}].quantity: must be a positive integer")
        if price is None or price < 0:
            errors.append(f"items[{i}].price: must be a number >= 0")
        if description is not None and not isinstance(description, str):
            errors.append(f"items[{i}].description: must be a string")

        if not errors:
            items.append(OrderItem(name=name.strip(), quantity=qty, price=price, description=description))

    if errors:
        raise InvalidInputError("Validation failed!", errors)
    return tuple(items)


def line_total(item: OrderItem) -> float:
    return item.quantity * item.price


def order_total(items: Iterable[OrderItem]) -> float:
    total = 0.0
    for x in items:
        total += line_total(x)
    return total


def build_summary(items: Sequence[OrderItem], currency_symbol: str = "$") -> Tuple[str, float]:
    if not items:
        return ("No items.", 0.0)

    lines: List[str] = []
    for i, line in enumerate(items, start=1):
        lines.append(f"{i}. x{line.quantity} {line.name} = {currency_symbol}{line_total(line):.2f}")

    total = order_total(items)
    return ("Order summary:\n" + "\n".join(lines) + f"\n\nTotal: {currency_symbol}{total:.2f}", total)
