"""
Abstract persistence collaborator.

A Collection stores documents (plain dicts) and answers queries written in
the filter dialect from ``resourcekit.db.filters``. Controllers only ever talk
to this interface; concrete adapters live beside it.

All methods are async so that handlers can fan out several lookups at once.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

Document = Dict[str, Any]
Filter = Mapping[str, Any]


def set_fields(update: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the ``$set`` payload of an update document.

    Only ``$set`` is understood; anything else is rejected so a caller
    never silently replaces a whole document.
    """
    unknown = [k for k in update if k != "$set"]
    if unknown:
        raise ValueError(f"Unsupported update operators: {', '.join(sorted(unknown))}")
    payload = update.get("$set") or {}
    if not isinstance(payload, Mapping):
        raise ValueError("$set expects a mapping")
    return dict(payload)


class Collection(ABC):
    """Document collection addressed by filters."""

    #: Field holding the store-assigned primary key.
    primary_key: str = "id"

    @abstractmethod
    async def find(self, filter: Filter, *, skip: int = 0, limit: Optional[int] = None) -> List[Document]:
        """Return matching documents in insertion order, windowed by skip/limit."""

    @abstractmethod
    async def find_one(self, filter: Filter) -> Optional[Document]:
        """Return the first matching document, or None."""

    @abstractmethod
    async def create(self, document: Mapping[str, Any]) -> Document:
        """Insert a document and return it with store-assigned fields populated."""

    @abstractmethod
    async def find_one_and_update(self, filter: Filter, update: Mapping[str, Any]) -> Optional[Document]:
        """Apply ``update`` (``{"$set": {...}}``) to the first match and return the updated document."""

    @abstractmethod
    async def find_one_and_delete(self, filter: Filter) -> Optional[Document]:
        """Remove the first match and return it, or None when nothing matched."""

    @abstractmethod
    async def count(self, filter: Filter) -> int:
        """Return the number of matching documents."""
