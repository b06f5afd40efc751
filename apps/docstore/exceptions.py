# apps/docstore/exceptions.py


class StoreError(Exception):
    """Base class for every document store failure."""


class DocumentNotFound(StoreError):
    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Document {collection}/{doc_id} not found")


class DocumentConflict(StoreError):
    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Document {collection}/{doc_id} already exists")


class TransportError(StoreError):
    """The store (or the executor behind it) could not be reached."""
