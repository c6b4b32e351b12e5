"""
In-process collection adapter.

Keeps documents in insertion order inside a list. Useful for tests and for
resources whose data does not need to outlive the process. Documents are
copied on the way in and out so callers never share state with the store.

Mutations never await between reading and writing the list, so each one is
atomic with respect to other coroutines on the same event loop.
"""
from __future__ import annotations

import copy
import uuid
from typing import Any, Iterable, List, Mapping, Optional

from resourcekit.db.collection import Collection, Document, Filter, set_fields
from resourcekit.db.filters import matches


def _new_id() -> str:
    return uuid.uuid4().hex


class MemoryCollection(Collection):
    def __init__(self, documents: Iterable[Mapping[str, Any]] = (), *, primary_key: str = "id"):
        self.primary_key = primary_key
        self._documents: List[Document] = []
        for doc in documents:
            self._documents.append(self._prepare(doc))

    def _prepare(self, document: Mapping[str, Any]) -> Document:
        doc = copy.deepcopy(dict(document))
        if doc.get(self.primary_key) is None:
            doc[self.primary_key] = _new_id()
        return doc

    def _first_index(self, filter: Filter) -> Optional[int]:
        for index, doc in enumerate(self._documents):
            if matches(doc, filter):
                return index
        return None

    async def find(self, filter: Filter, *, skip: int = 0, limit: Optional[int] = None) -> List[Document]:
        hits = [doc for doc in self._documents if matches(doc, filter)]
        end = None if limit is None else skip + limit
        return copy.deepcopy(hits[skip:end])

    async def find_one(self, filter: Filter) -> Optional[Document]:
        index = self._first_index(filter)
        return None if index is None else copy.deepcopy(self._documents[index])

    async def create(self, document: Mapping[str, Any]) -> Document:
        doc = self._prepare(document)
        if any(d[self.primary_key] == doc[self.primary_key] for d in self._documents):
            raise ValueError(f"Duplicate {self.primary_key}: {doc[self.primary_key]}")
        self._documents.append(doc)
        return copy.deepcopy(doc)

    async def find_one_and_update(self, filter: Filter, update: Mapping[str, Any]) -> Optional[Document]:
        changes = set_fields(update)
        index = self._first_index(filter)
        if index is None:
            return None
        self._documents[index].update(copy.deepcopy(changes))
        return copy.deepcopy(self._documents[index])

    async def find_one_and_delete(self, filter: Filter) -> Optional[Document]:
        index = self._first_index(filter)
        if index is None:
            return None
        return self._documents.pop(index)

    async def count(self, filter: Filter) -> int:
        return sum(1 for doc in self._documents if matches(doc, filter))

    def __len__(self) -> int:
        return len(self._documents)
