"""Tagged result type returned by application services.

A service command either succeeds with a value or fails with a domain
error; callers branch on the tag instead of catching exceptions::

    result = service.cancel_order(principal, order_id)
    if isinstance(result, Failure):
        return render_error(result.error)
    order = result.value
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    error: E

    @property
    def is_success(self) -> bool:
        return False

    def unwrap(self):
        """Re-raise the carried error.  Mostly useful in tests and scripts."""
        raise self.error


Result = Union[Success[T], Failure[E]]
