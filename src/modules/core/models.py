"""Base abstract model for the shop modules.

Provides ``BaseModel``: ``created_at`` / ``updated_at`` bookkeeping on top of
Django's default ``BigAutoField`` primary key.  Orders are referenced by a
numeric id internally and by ``order_number`` externally, so no UUID key is
used here.

The ``save()`` guard ensures ``updated_at`` is included when
``update_fields`` is specified (Django skips ``auto_now`` fields otherwise).
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """Abstract base with timestamp bookkeeping."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


class AppendOnlyModel(models.Model):
    """Abstract base for ledger/audit rows that are written once.

    Re-saving a persisted row raises ``RuntimeError``; audit records are
    corrected by appending a compensating row, never by editing.
    """

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise RuntimeError(
                f"{self._meta.label} rows are append-only and cannot be updated."
            )
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise RuntimeError(
            f"{self._meta.label} rows are append-only and cannot be deleted."
        )
