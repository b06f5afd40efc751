# apps/docstore/models.py

from django.db import models
from django.db.models import Index
from django.utils import timezone


# -----------------------------------------------------------------------------
class Document(models.Model):
    """
    One schemaless record inside a named collection.

    Collections never reference each other at the database level: there are
    no foreign keys and no cascades, exactly like the managed document
    database this layer was written against. Relationships live inside
    `data` (e.g. {"subject_id": "..."}), and cleaning them up is the job of
    the service layer.
    """
    id = models.BigAutoField(primary_key=True)
    collection = models.CharField(max_length=64, db_index=True)
    doc_id = models.CharField(max_length=64)
    data = models.JSONField(default=dict, blank=True)

    # Principals allowed to read this record (granted after the fact by
    # the delegated permission executor)
    read_principals = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Document"
        verbose_name_plural = "Documents"
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['collection', 'doc_id'], name='uniq_collection_doc_id'),
        ]
        indexes = [
            Index(fields=['collection', 'created_at'], name='docstore_coll_created_idx'),
        ]

    def __str__(self):
        return f"{self.collection}/{self.doc_id}"

    def as_dict(self, fields=None) -> dict:
        data = self.data or {}
        if fields:
            data = {k: v for k, v in data.items() if k in fields}
        return {
            **data,
            "id": self.doc_id,
            "created_at": self.created_at.isoformat(),
        }
