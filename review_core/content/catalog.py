"""
Content catalog boundary.

The review core treats items as opaque ids plus front/back content. The
catalog supplies that content and tells whether an item is still active.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from review_core.bkt.constants import ItemType


class ContentItem(BaseModel):
    """
    Question/answer payload of one reviewable item.
    """
    model_config = ConfigDict(frozen=True)

    item_id: str = Field(..., description="Identifier shared with the scheduling state")
    front: str = Field(default="", description="Prompt side")
    back: str = Field(default="", description="Answer side")
    item_type: ItemType = Field(default=ItemType.FLASHCARD)

    # Concept tagging (drives the mastery model)
    concept_id: Optional[str] = None
    keyword_id: Optional[str] = None

    # Soft-delete flags
    is_active: bool = True
    deleted_at: Optional[datetime] = None

    @property
    def is_available(self) -> bool:
        """Active and not soft-deleted."""
        return self.is_active and self.deleted_at is None


class ContentCatalog(Protocol):
    """Read-only lookup of item content."""

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        """Return the item, or None when it does not exist."""
        ...


class InMemoryContentCatalog:
    """
    Catalog backed by a dict; useful for tests and for callers that already
    hold the content in memory.
    """

    def __init__(self, items: Iterable[ContentItem] = ()):
        self._items: dict[str, ContentItem] = {item.item_id: item for item in items}

    def add(self, item: ContentItem) -> None:
        self._items[item.item_id] = item

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        return self._items.get(item_id)

    def __len__(self) -> int:
        return len(self._items)
