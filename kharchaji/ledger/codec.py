"""Descriptor text codec.

A descriptor packs one expense line into a single string::

    name [" (" quantity ")"] " - ₹" price ["|CATS:" category ("," category)*]

e.g. ``"Milk (2L) - ₹45.00|CATS:Groceries,Food"``. Decoding is defensive and
never raises; malformed input degrades to defaults.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RecordItem

logger = logging.getLogger(__name__)

PRICE_SEPARATOR = " - ₹"
CATEGORY_MARKER = "|CATS:"

_QUANTITY_PATTERN = re.compile(r"\((.*?)\)")
_QUANTITY_GROUP = re.compile(r"\s*\(.*?\)")
_TRAILING_NON_NUMERIC = re.compile(r"[^\d.]+$")


@dataclass
class Descriptor:
    """Structured form of a descriptor string."""

    name: str
    quantity: str | None = None
    price: float = 0.0
    categories: list[str] = field(default_factory=list)


def format_price(price: float) -> str:
    """Two decimals with a '.' point regardless of locale."""
    return f"{price:.2f}"


def encode(
    name: str,
    price: float,
    quantity: str | None = None,
    categories: list[str] | None = None,
) -> str:
    """Encode a line item into descriptor text."""
    if quantity is not None and quantity.strip():
        text = f"{name} ({quantity}){PRICE_SEPARATOR}{format_price(price)}"
    else:
        text = f"{name}{PRICE_SEPARATOR}{format_price(price)}"
    if categories:
        text += CATEGORY_MARKER + ",".join(categories)
    return text


def split_categories(text: str) -> tuple[str, list[str]]:
    """Split the ``|CATS:`` suffix off ``text``.

    Returns:
        (clean_text, categories). Categories is empty when the marker is
        missing or carries no payload.
    """
    clean, marker, payload = text.partition(CATEGORY_MARKER)
    if not marker:
        return text, []
    categories = [c.strip() for c in payload.split(",")]
    categories = [c for c in categories if c]
    if not categories:
        logger.debug("Category marker without payload in %r", text)
    return clean, categories


def _parse_amount(text: str) -> float:
    cleaned = _TRAILING_NON_NUMERIC.sub("", text.strip()).strip()
    try:
        value = float(cleaned)
    except ValueError:
        logger.debug("Unparsable price %r, defaulting to 0.0", text)
        return 0.0
    if value < 0 or not math.isfinite(value):
        logger.debug("Out of range price %r, defaulting to 0.0", text)
        return 0.0
    return value


def decode(text: str) -> Descriptor:
    """Decode descriptor text. Never raises."""
    clean, categories = split_categories(text)

    head, sep, tail = clean.partition(PRICE_SEPARATOR)
    if not sep:
        logger.debug("No price separator in %r", text)
        return Descriptor(name=clean, categories=categories)

    head = head.strip()
    quantity = None
    match = _QUANTITY_PATTERN.search(head)
    if match:
        quantity = match.group(1).strip() or None
        head = _QUANTITY_GROUP.sub("", head, count=1)

    return Descriptor(
        name=head.strip(),
        quantity=quantity,
        price=_parse_amount(tail),
        categories=categories,
    )


def parse_price(text: str) -> float:
    """Extract only the price from descriptor text."""
    clean, _ = split_categories(text)
    _, sep, tail = clean.partition(PRICE_SEPARATOR)
    if not sep:
        return 0.0
    return _parse_amount(tail)


def record_item_price(item: RecordItem) -> float:
    """Price of a snapshot item, 0.0 when its price text is not numeric."""
    try:
        return float(item.price_text)
    except (TypeError, ValueError):
        logger.warning(
            "Failed to parse price %r for %r, defaulting to 0.0",
            item.price_text,
            item.description,
        )
        return 0.0


def encode_record_item(item: RecordItem) -> str:
    """Re-encode a snapshot item, substituting 0.0 for a non-numeric price."""
    return encode(item.description, record_item_price(item), item.quantity, item.categories)
