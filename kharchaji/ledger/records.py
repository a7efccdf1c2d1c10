"""Rules for merging snapshot items into a master snapshot or a day's rows."""

from __future__ import annotations

import logging
from dataclasses import replace

from .codec import format_price, record_item_price
from .models import LineItemRecord, RecordItem

logger = logging.getLogger(__name__)


def item_signature(item: RecordItem) -> str:
    """Order-insensitive identity of an item's visible content."""
    categories = ",".join(item.categories or [])
    images = ",".join(sorted(item.image_refs or []))
    return "|".join(
        [
            item.description.strip(),
            item.price_text.strip(),
            (item.quantity or "").strip(),
            categories,
            images,
        ]
    )


def items_identical(a: list[RecordItem], b: list[RecordItem]) -> bool:
    if len(a) != len(b):
        return False
    return sorted(map(item_signature, a)) == sorted(map(item_signature, b))


def _find_match(
    new: RecordItem, existing: list[RecordItem], used: set[int]
) -> int | None:
    # 1. same source row
    if new.source_item_id is not None:
        for idx, old in enumerate(existing):
            if idx not in used and old.source_item_id == new.source_item_id:
                return idx

    # 2. same name, case-insensitive
    name = new.description.strip().lower()
    for idx, old in enumerate(existing):
        if idx not in used and old.description.strip().lower() == name:
            return idx

    # 3. same price and one name contains the other
    for idx, old in enumerate(existing):
        if idx in used or old.price_text.strip() != new.price_text.strip():
            continue
        old_name = old.description.strip().lower()
        if old_name in name or name in old_name:
            return idx

    return None


def merge_record_items(
    existing: list[RecordItem], incoming: list[RecordItem]
) -> list[RecordItem]:
    """Merge ``incoming`` into ``existing``.

    Matched items take the incoming values but keep the old
    ``source_item_id`` when the incoming one is missing. Unmatched incoming
    items are appended, and unmatched existing items are kept at the end.
    """
    merged: list[RecordItem] = []
    used: set[int] = set()

    for new in incoming:
        idx = _find_match(new, existing, used)
        if idx is None:
            logger.debug("Adding new item to master: %s", new.description)
            merged.append(new)
            continue
        used.add(idx)
        old = existing[idx]
        logger.debug(
            "Updating master item %r -> %r (price %s -> %s)",
            old.description,
            new.description,
            old.price_text,
            new.price_text,
        )
        merged.append(
            replace(
                new,
                source_item_id=(
                    new.source_item_id
                    if new.source_item_id is not None
                    else old.source_item_id
                ),
            )
        )

    merged.extend(old for idx, old in enumerate(existing) if idx not in used)
    return merged


def content_key(item: RecordItem) -> tuple[str, str, str]:
    """Name, normalised price and quantity of an item."""
    return (
        item.description.strip(),
        format_price(record_item_price(item)),
        (item.quantity or "").strip(),
    )


def plan_day_load(
    existing: list[LineItemRecord], incoming: list[RecordItem], timestamp_ms: int
) -> tuple[list[LineItemRecord], list[LineItemRecord]]:
    """Work out how to load snapshot items into a day's working rows.

    An incoming item matches an existing row by ``source_item_id``, then by
    :func:`content_key`. A matched row takes the item's categories and image
    refs when those are non-empty and differ; otherwise it is left alone.
    Unmatched items become new rows stamped with ``timestamp_ms``.

    Returns:
        (rows_to_insert, rows_to_update)
    """
    by_id = {row.id: row for row in existing if row.id is not None}
    by_key = {content_key(row.to_record_item()): row for row in existing}

    to_insert: list[LineItemRecord] = []
    updates: dict[int, LineItemRecord] = {}
    for item in incoming:
        row = by_id.get(item.source_item_id) or by_key.get(content_key(item))
        if row is None:
            to_insert.append(item.to_line_item(timestamp_ms))
            continue
        row = updates.get(row.id, row)

        categories = list(item.categories) if item.categories else row.categories
        image_refs = list(item.image_refs) if item.image_refs else row.image_refs
        if categories == row.categories and image_refs == row.image_refs:
            continue
        updates[row.id] = replace(row, categories=categories, image_refs=image_refs)
    return to_insert, list(updates.values())
