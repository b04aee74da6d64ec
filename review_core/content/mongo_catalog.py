"""
MongoDB repository for item content.

One document per reviewable item:
    {item_id, front, back, item_type, concept_id, keyword_id, is_active, deleted_at}
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from review_core import config
from review_core.content.catalog import ContentItem
from review_core.errors import ContentLookupError

logger = logging.getLogger(__name__)

# Global connection pool (reused across catalogs)
_client: Optional[MongoClient] = None


# ---- Connection Management ----

def get_client() -> MongoClient:
    """
    Get the shared MongoDB client.

    The client keeps a connection pool that's reused across lookups to avoid
    a cold start on every query.
    """
    global _client

    if _client is not None:
        return _client

    _client = MongoClient(
        config.get_mongo_uri(),
        maxPoolSize=10,       # Connection pool size (matches queue lookup batch)
        minPoolSize=1,        # Keep at least 1 connection alive
        maxIdleTimeMS=60000   # Keep connections alive for 60 seconds
    )
    return _client


def get_collection() -> Collection:
    """Get the content collection named by configuration."""
    client = get_client()
    return client[config.get_content_db_name()][config.get_content_collection()]


class MongoContentCatalog:
    """
    Content catalog reading item documents from MongoDB.
    """

    def __init__(self, collection: Optional[Collection] = None):
        self._collection = collection

    @property
    def collection(self) -> Collection:
        if self._collection is None:
            self._collection = get_collection()
        return self._collection

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        """
        Fetch one item by id.

        Raises:
            ContentLookupError: the query failed or the document is malformed
        """
        try:
            doc = self.collection.find_one({"item_id": item_id}, {"_id": 0})
        except PyMongoError as exc:
            raise ContentLookupError(f"Lookup failed for item {item_id}: {exc}") from exc

        if doc is None:
            return None

        try:
            return ContentItem.model_validate(doc)
        except ValidationError as exc:
            logger.warning("Malformed content document for item %s", item_id)
            raise ContentLookupError(f"Malformed content document for item {item_id}") from exc
