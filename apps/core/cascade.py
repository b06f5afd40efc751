# apps/core/cascade.py

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from apps.docstore.client import store
from apps.docstore.exceptions import DocumentNotFound, TransportError
from .exceptions import PartialCascadeFailure

logger = logging.getLogger(__name__)


@dataclass
class CascadeReport:
    """
    Outcome of a multi-step delete. There is no transaction around the
    steps, so `failed` lists what is still left behind.
    """
    root_id: str
    deleted: int = 0
    already_gone: int = 0
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed

    def merge(self, other: "CascadeReport") -> "CascadeReport":
        self.deleted += other.deleted
        self.already_gone += other.already_gone
        self.failed.extend(other.failed)
        return self

    def raise_if_failed(self) -> None:
        if self.failed:
            raise PartialCascadeFailure(self.root_id, [doc_id for _, doc_id in self.failed], self.deleted)

    def as_dict(self) -> dict:
        return {
            "root_id": self.root_id,
            "deleted": self.deleted,
            "already_gone": self.already_gone,
            "failed": [doc_id for _, doc_id in self.failed],
        }


def delete_one(collection: str, doc_id: str, report: CascadeReport) -> bool:
    """
    Delete a single record, treating NotFound as success.
    Transport failures are recorded on the report instead of aborting.
    """
    try:
        store.delete_document(collection, doc_id)
        report.deleted += 1
        return True
    except DocumentNotFound:
        report.already_gone += 1
        return True
    except TransportError as e:
        logger.warning("[Cascade] %s/%s not deleted: %s", collection, doc_id, e)
        report.failed.append((collection, doc_id))
        return False


def delete_many(collection: str, doc_ids: Iterable[str], report: CascadeReport) -> bool:
    ok = True
    for doc_id in doc_ids:
        ok = delete_one(collection, doc_id, report) and ok
    return ok
