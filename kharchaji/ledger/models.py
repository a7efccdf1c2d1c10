"""Data models for expense line items and daily snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date

from . import codec
from .dates import now_millis, start_of_day_millis


@dataclass
class LineItemRecord:
    """A single expense line.

    The tagged fields are what gets stored; ``descriptor_text`` is only
    produced at import/export boundaries.
    """

    name: str
    price: float = 0.0
    quantity: str | None = None
    categories: list[str] = field(default_factory=list)
    is_done: bool = False
    timestamp_ms: int = field(default_factory=now_millis)
    image_refs: list[str] | None = None
    id: int | None = None

    @property
    def descriptor_text(self) -> str:
        return codec.encode(self.name, self.price, self.quantity, self.categories)

    @classmethod
    def from_descriptor(
        cls,
        text: str,
        *,
        is_done: bool = False,
        timestamp_ms: int | None = None,
        image_refs: list[str] | None = None,
        categories: list[str] | None = None,
        id: int | None = None,
    ) -> LineItemRecord:
        """Build a record from legacy descriptor text.

        An explicit ``categories`` list takes precedence over the ``|CATS:``
        suffix, matching rows that stored both.
        """
        decoded = codec.decode(text)
        return cls(
            name=decoded.name,
            price=decoded.price,
            quantity=decoded.quantity,
            categories=list(categories) if categories else decoded.categories,
            is_done=is_done,
            timestamp_ms=now_millis() if timestamp_ms is None else timestamp_ms,
            image_refs=image_refs,
            id=id,
        )

    @classmethod
    def from_row(cls, row: dict) -> LineItemRecord:
        return cls(
            id=row["id"],
            name=row["name"],
            price=row["price"],
            quantity=row["quantity"],
            categories=row["categories"] or [],
            is_done=bool(row["is_done"]),
            timestamp_ms=row["timestamp_ms"],
            image_refs=row["image_refs"],
        )

    def to_record_item(self) -> RecordItem:
        return RecordItem(
            description=self.name,
            price_text=codec.format_price(self.price),
            quantity=self.quantity,
            is_checked=self.is_done,
            categories=list(self.categories) or None,
            image_refs=list(self.image_refs) if self.image_refs else None,
            source_item_id=self.id,
        )


@dataclass
class RecordItem:
    """Decoded line item as carried inside a snapshot payload."""

    description: str
    price_text: str
    quantity: str | None = None
    is_checked: bool = False
    categories: list[str] | None = None
    image_refs: list[str] | None = None
    source_item_id: int | None = None

    @property
    def price(self) -> float:
        try:
            return float(self.price_text)
        except (TypeError, ValueError):
            return 0.0

    def to_line_item(self, timestamp_ms: int) -> LineItemRecord:
        """Turn a snapshot entry back into a working row."""
        return LineItemRecord(
            name=self.description,
            price=codec.record_item_price(self),
            quantity=self.quantity,
            categories=list(self.categories or []),
            is_done=self.is_checked,
            timestamp_ms=timestamp_ms,
            image_refs=list(self.image_refs) if self.image_refs else None,
        )

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "quantity": self.quantity,
            "price": self.price_text,
            "isChecked": self.is_checked,
            "categories": self.categories,
            "imageUris": self.image_refs,
            "sourceItemId": self.source_item_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RecordItem:
        return cls(
            description=data.get("description", ""),
            price_text=str(data.get("price", "0.0")),
            quantity=data.get("quantity"),
            is_checked=bool(data.get("isChecked", False)),
            categories=data.get("categories"),
            image_refs=data.get("imageUris"),
            source_item_id=data.get("sourceItemId"),
        )


@dataclass
class DailySnapshot:
    """A saved set of line items for one day ("calculation record")."""

    record_date: date
    items: list[RecordItem] = field(default_factory=list)
    total_sum: float = 0.0
    checked_items_count: int = 0
    checked_items_sum: float = 0.0
    is_master_save: bool = False
    timestamp_ms: int = field(default_factory=now_millis)
    id: int | None = None

    @property
    def record_date_millis(self) -> int:
        return start_of_day_millis(self.record_date)

    @classmethod
    def from_items(
        cls,
        record_date: date,
        items: list[RecordItem],
        *,
        is_master_save: bool = False,
    ) -> DailySnapshot:
        """Build a snapshot with totals computed from ``items``."""
        checked = [i for i in items if i.is_checked]
        return cls(
            record_date=record_date,
            items=list(items),
            total_sum=sum(i.price for i in items),
            checked_items_count=len(checked),
            checked_items_sum=sum(i.price for i in checked),
            is_master_save=is_master_save,
        )

    def with_items(self, items: list[RecordItem]) -> DailySnapshot:
        """Copy holding ``items``, with totals recomputed and a fresh timestamp."""
        rebuilt = DailySnapshot.from_items(
            self.record_date, items, is_master_save=self.is_master_save
        )
        rebuilt.id = self.id
        return rebuilt

    def add_item(self, item: RecordItem) -> DailySnapshot:
        return self.with_items([*self.items, item])

    def update_item(
        self,
        index: int,
        description: str,
        price_text: str,
        quantity: str | None = None,
        categories: list[str] | None = None,
    ) -> DailySnapshot:
        """Replace the visible fields of item ``index``.

        Check state, image refs and source id carry over. ``categories=None``
        keeps the item's current categories.

        Raises:
            IndexError: ``index`` is outside the item list.
        """
        if not 0 <= index < len(self.items):
            raise IndexError(f"Snapshot has no item at index {index}")
        old = self.items[index]
        items = list(self.items)
        items[index] = replace(
            old,
            description=description,
            price_text=price_text,
            quantity=quantity,
            categories=old.categories if categories is None else categories,
        )
        return self.with_items(items)

    def remove_item(self, index: int) -> DailySnapshot:
        if not 0 <= index < len(self.items):
            raise IndexError(f"Snapshot has no item at index {index}")
        return self.with_items(self.items[:index] + self.items[index + 1 :])
