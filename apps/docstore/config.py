# apps/docstore/config.py

from django.conf import settings


def collection_id(database: str, name: str) -> str:
    """
    Resolve a configured collection id, e.g. collection_id("interactions", "post_like").
    """
    return settings.DOCUMENT_STORE[database][name]


def page_size() -> int:
    return getattr(settings, "DOCUMENT_PAGE_SIZE", 100)
