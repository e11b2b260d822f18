# src/taskmaster/store/errors.py

from __future__ import annotations


class StoreError(RuntimeError):
    """A document store read or write failed."""


class DocumentNotFoundError(StoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"No document {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id
