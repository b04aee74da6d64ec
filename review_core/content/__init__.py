"""
Content catalog collaborators.
"""

from review_core.content.catalog import ContentCatalog, ContentItem, InMemoryContentCatalog


__all__ = [
    "ContentCatalog",
    "ContentItem",
    "InMemoryContentCatalog",
]
