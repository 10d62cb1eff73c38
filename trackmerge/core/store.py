"""
In-memory document store.

Stands in for the storage collaborator: an ordered, mutable collection of
SourceDocuments with lookup and filtering by id. Documents themselves are
immutable; "updating" one replaces it.
"""

from __future__ import annotations

import uuid
from typing import Dict, Iterable, Iterator, List, Optional

from trackmerge.model import SourceDocument


def new_document_id() -> str:
    return uuid.uuid4().hex[:13]


class DocumentStore:
    def __init__(self, documents: Optional[Iterable[SourceDocument]] = None):
        self._docs: List[SourceDocument] = []
        for doc in documents or ():
            self.add(doc)

    def __len__(self) -> int:
        return len(self._docs)

    def __iter__(self) -> Iterator[SourceDocument]:
        return iter(list(self._docs))

    def __contains__(self, document_id: object) -> bool:
        return any(d.id == document_id for d in self._docs)

    def list(self) -> List[SourceDocument]:
        return list(self._docs)

    def ids(self) -> List[str]:
        return [d.id for d in self._docs]

    def get(self, document_id: str) -> Optional[SourceDocument]:
        for d in self._docs:
            if d.id == document_id:
                return d
        return None

    def filter_by_ids(self, document_ids: Iterable[str]) -> List[SourceDocument]:
        """Documents whose id is in `document_ids`, in storage order."""
        wanted = set(document_ids)
        return [d for d in self._docs if d.id in wanted]

    def add(self, document: SourceDocument) -> SourceDocument:
        if document.id in self:
            raise ValueError(f"Duplicate document id: {document.id}")
        self._docs.append(document)
        return document

    def replace(self, document: SourceDocument) -> None:
        for i, d in enumerate(self._docs):
            if d.id == document.id:
                self._docs[i] = document
                return
        raise KeyError(document.id)

    def remove(self, document_id: str) -> bool:
        before = len(self._docs)
        self._docs = [d for d in self._docs if d.id != document_id]
        return len(self._docs) != before

    def as_dict(self) -> Dict[str, SourceDocument]:
        return {d.id: d for d in self._docs}
