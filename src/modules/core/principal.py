"""Acting identity passed from the HTTP boundary into services.

Authentication is done by DRF (SimpleJWT); services never look at the
request.  A principal is either a registered user or an anonymous guest
identified by an opaque session id.  ``is_privileged`` marks staff users
(``users.is_staff``) allowed to run admin operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Principal:
    user_id: Optional[int] = None
    guest_session_id: Optional[str] = None
    is_privileged: bool = False
    email: str = ""

    @classmethod
    def for_user(
        cls, user_id: int, *, is_privileged: bool = False, email: str = ""
    ) -> Principal:
        return cls(user_id=user_id, is_privileged=is_privileged, email=email)

    @classmethod
    def for_guest(cls, guest_session_id: str) -> Principal:
        return cls(guest_session_id=guest_session_id)

    @classmethod
    def system(cls) -> Principal:
        return cls()

    @classmethod
    def from_request(
        cls, request: Any, guest_session_id: Optional[str] = None
    ) -> Principal:
        """Resolve the principal for a DRF request.

        An authenticated user always wins over a supplied guest session id.
        """
        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            return cls.for_user(
                user.pk,
                is_privileged=bool(getattr(user, "is_staff", False)),
                email=getattr(user, "email", "") or "",
            )
        if guest_session_id:
            return cls.for_guest(guest_session_id)
        return cls.system()

    @property
    def is_guest(self) -> bool:
        return self.user_id is None and bool(self.guest_session_id)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None and not self.guest_session_id

    @property
    def has_single_owner(self) -> bool:
        """Exactly one of ``user_id`` / ``guest_session_id`` is set."""
        return (self.user_id is None) != (not self.guest_session_id)

    def owner_filter(
        self, user_field: str = "user_id", guest_field: str = "guest_session_id"
    ) -> Dict[str, Any]:
        """ORM look-up that scopes rows to this principal."""
        if self.user_id is not None:
            return {user_field: self.user_id}
        return {guest_field: self.guest_session_id}

    def owns(self, order: Any) -> bool:
        if self.user_id is not None:
            return order.user_id == self.user_id
        if self.guest_session_id:
            return order.guest_session_id == self.guest_session_id
        return False

    def can_access(self, order: Any) -> bool:
        return self.is_privileged or self.owns(order)
