"""Generic repository interface (Dependency Inversion Principle).

Provides ``IRepository[T]``, the base abstract class that the
domain-specific repository interfaces extend.  Service-layer code depends
on these abstractions and receives concrete implementations through its
constructor, so tests can pass in-memory doubles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    Type parameter ``T`` is the aggregate root managed by the repository
    (e.g. ``Order``).  Aggregates are never hard-deleted, so there is no
    ``delete`` in the contract.
    """

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[T]:
        """Retrieve an aggregate by its primary key."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an aggregate."""
