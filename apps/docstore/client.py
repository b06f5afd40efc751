# apps/docstore/client.py

import functools
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Q

from .config import page_size as default_page_size
from .exceptions import DocumentConflict, DocumentNotFound, TransportError
from .models import Document

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Query builders
# -------------------------------------------------------------------------
EQUAL = "equal"
SEARCH = "search"
CURSOR_AFTER = "cursorAfter"
LIMIT = "limit"
OFFSET = "offset"
SELECT = "select"
ORDER_ASC = "orderAsc"
ORDER_DESC = "orderDesc"

# Attributes that live on the row itself rather than inside `data`
SYSTEM_ATTRIBUTES = {"id": "doc_id", "created_at": "created_at"}


@dataclass(frozen=True)
class Query:
    method: str
    attribute: Optional[str] = None
    values: tuple = field(default_factory=tuple)

    @classmethod
    def equal(cls, attribute: str, value) -> "Query":
        if isinstance(value, (list, tuple, set)):
            return cls(EQUAL, attribute, tuple(value))
        return cls(EQUAL, attribute, (value,))

    @classmethod
    def search(cls, attribute: str, term: str) -> "Query":
        return cls(SEARCH, attribute, (term,))

    @classmethod
    def cursor_after(cls, doc_id: str) -> "Query":
        return cls(CURSOR_AFTER, None, (doc_id,))

    @classmethod
    def limit(cls, n: int) -> "Query":
        return cls(LIMIT, None, (int(n),))

    @classmethod
    def offset(cls, n: int) -> "Query":
        return cls(OFFSET, None, (int(n),))

    @classmethod
    def select(cls, attributes: Sequence[str]) -> "Query":
        return cls(SELECT, None, tuple(attributes))

    @classmethod
    def order_asc(cls, attribute: str = "created_at") -> "Query":
        return cls(ORDER_ASC, attribute)

    @classmethod
    def order_desc(cls, attribute: str = "created_at") -> "Query":
        return cls(ORDER_DESC, attribute)


@dataclass
class DocumentList:
    total: int
    documents: List[Dict[str, Any]]


# -------------------------------------------------------------------------
# Transport guard
# -------------------------------------------------------------------------
def _transport(func):
    """Translate low-level database failures into TransportError."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError:
            raise
        except DatabaseError as e:
            logger.error("[Store] %s failed: %s", func.__name__, e)
            raise TransportError(str(e)) from e
    return wrapper


def _lookup(attribute: str) -> str:
    return SYSTEM_ATTRIBUTES.get(attribute) or f"data__{attribute}"


# -------------------------------------------------------------------------
# Client
# -------------------------------------------------------------------------
class DocumentStore:
    """
    Narrow CRUD + query client over named collections.

    Every method is an independent write or read. Nothing here spans more
    than one document atomically, so callers composing several calls must
    treat partial completion as a normal outcome.
    """

    @staticmethod
    def unique_id() -> str:
        return uuid.uuid4().hex

    # ------------------------------------------------------------------
    @_transport
    def create_document(
        self,
        collection: str,
        data: Dict[str, Any],
        doc_id: Optional[str] = None,
        permissions: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        doc_id = doc_id or self.unique_id()
        try:
            with transaction.atomic():
                doc = Document.objects.create(
                    collection=collection,
                    doc_id=doc_id,
                    data=dict(data),
                    read_principals=sorted(set(permissions or [])),
                )
        except IntegrityError as e:
            raise DocumentConflict(collection, doc_id) from e
        return doc.as_dict()

    # ------------------------------------------------------------------
    def _get(self, collection: str, doc_id: str) -> Document:
        doc = Document.objects.filter(collection=collection, doc_id=doc_id).first()
        if doc is None:
            raise DocumentNotFound(collection, doc_id)
        return doc

    @_transport
    def get_document(self, collection: str, doc_id: str, fields: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        return self._get(collection, doc_id).as_dict(fields)

    # ------------------------------------------------------------------
    @_transport
    def list_documents(self, collection: str, queries: Iterable[Query] = ()) -> DocumentList:
        qs = Document.objects.filter(collection=collection)
        ordering = ["id"]
        limit = None
        offset = 0
        cursor = None
        fields = None

        for q in queries:
            if q.method == EQUAL:
                lookup = _lookup(q.attribute)
                if len(q.values) == 1:
                    qs = qs.filter(**{lookup: q.values[0]})
                else:
                    qs = qs.filter(**{f"{lookup}__in": list(q.values)})
            elif q.method == SEARCH:
                qs = qs.filter(**{f"{_lookup(q.attribute)}__icontains": q.values[0]})
            elif q.method == ORDER_ASC:
                ordering = [_lookup(q.attribute), "id"]
            elif q.method == ORDER_DESC:
                ordering = [f"-{_lookup(q.attribute)}", "-id"]
            elif q.method == LIMIT:
                limit = q.values[0]
            elif q.method == OFFSET:
                offset = q.values[0]
            elif q.method == CURSOR_AFTER:
                cursor = q.values[0]
            elif q.method == SELECT:
                fields = q.values
            else:
                raise ValueError(f"Unsupported query method: {q.method}")

        total = qs.count()
        qs = qs.order_by(*ordering)

        if cursor:
            qs = self._after_cursor(qs, collection, cursor, ordering)

        if offset:
            qs = qs[offset:]
        if limit is not None:
            qs = qs[:limit]

        return DocumentList(total=total, documents=[doc.as_dict(fields) for doc in qs])

    def _after_cursor(self, qs, collection: str, cursor: str, ordering: List[str]):
        anchor = self._get(collection, cursor)
        descending = ordering[0].startswith("-")
        key = ordering[0].lstrip("-")

        if key == "id":
            return qs.filter(id__lt=anchor.id) if descending else qs.filter(id__gt=anchor.id)
        if key == "created_at":
            if descending:
                return qs.filter(
                    Q(created_at__lt=anchor.created_at) | Q(created_at=anchor.created_at, id__lt=anchor.id)
                )
            return qs.filter(
                Q(created_at__gt=anchor.created_at) | Q(created_at=anchor.created_at, id__gt=anchor.id)
            )
        raise ValueError(f"cursor pagination is not supported when ordering by {key}")

    # ------------------------------------------------------------------
    @_transport
    def update_document(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        doc = self._get(collection, doc_id)
        data = dict(doc.data or {})
        data.update(fields)
        doc.data = data
        doc.save(update_fields=["data", "updated_at"])
        return doc.as_dict()

    @_transport
    def delete_document(self, collection: str, doc_id: str) -> None:
        deleted, _ = Document.objects.filter(collection=collection, doc_id=doc_id).delete()
        if not deleted:
            raise DocumentNotFound(collection, doc_id)

    # ------------------------------------------------------------------
    @_transport
    def grant_read(self, collection: str, doc_id: str, principal_ids: Iterable[str]) -> Dict[str, Any]:
        # Concurrent grants on one document must not drop each other's principals
        with transaction.atomic():
            doc = Document.objects.select_for_update().filter(collection=collection, doc_id=doc_id).first()
            if doc is None:
                raise DocumentNotFound(collection, doc_id)
            principals = set(doc.read_principals or [])
            principals.update(p for p in principal_ids if p)
            doc.read_principals = sorted(principals)
            doc.save(update_fields=["read_principals", "updated_at"])
        return doc.as_dict()

    @_transport
    def get_read_principals(self, collection: str, doc_id: str) -> List[str]:
        return list(self._get(collection, doc_id).read_principals or [])

    # ------------------------------------------------------------------
    # Paging helpers
    # ------------------------------------------------------------------
    def iter_documents(
        self,
        collection: str,
        queries: Iterable[Query] = (),
        page_size: Optional[int] = None,
    ) -> Iterator[Dict[str, Any]]:
        """
        Walk every match with cursor pagination.
        Filters only: ordering/limit/cursor in `queries` are ignored.
        """
        page_size = page_size or default_page_size()
        filters = [q for q in queries if q.method in (EQUAL, SEARCH, SELECT)]
        cursor = None

        while True:
            page = filters + [Query.limit(page_size)]
            if cursor:
                page.append(Query.cursor_after(cursor))
            documents = self.list_documents(collection, page).documents
            yield from documents
            if len(documents) < page_size:
                return
            cursor = documents[-1]["id"]

    def collect_ids(self, collection: str, queries: Iterable[Query] = ()) -> List[str]:
        """Snapshot every matching id up front, before a destructive pass."""
        return [doc["id"] for doc in self.iter_documents(collection, queries)]


store = DocumentStore()
