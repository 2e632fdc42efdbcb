"""Asynchronous tasks of the orders module."""

from __future__ import annotations

from smtplib import SMTPException
from typing import Dict, Optional

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction

from modules.orders.constants import NotificationMethod, NotificationStatus
from modules.orders.models import OrderNotification

logger = structlog.get_logger(__name__)


@shared_task(name="orders.deliver_pending_notifications")
def deliver_pending_notifications(batch_size: Optional[int] = None) -> Dict[str, int]:
    """Send one batch of pending notifications through Django's email backend.

    Rows are locked with ``SKIP LOCKED`` so parallel workers split the
    queue.  Methods other than email are marked failed.
    """
    batch_size = batch_size or getattr(settings, "NOTIFICATION_BATCH_SIZE", 50)
    sent = failed = 0

    with transaction.atomic():
        batch = list(
            OrderNotification.objects.select_for_update(skip_locked=True)
            .filter(status=NotificationStatus.PENDING)
            .order_by("created_at", "id")[:batch_size]
        )
        for notification in batch:
            if notification.method != NotificationMethod.EMAIL:
                notification.mark_as_failed(
                    f"Unsupported notification method: {notification.method}"
                )
                failed += 1
                continue
            try:
                send_mail(
                    notification.subject,
                    notification.content,
                    settings.DEFAULT_FROM_EMAIL,
                    [notification.recipient],
                    fail_silently=False,
                )
            except (SMTPException, OSError) as exc:
                notification.mark_as_failed(str(exc))
                failed += 1
            else:
                notification.mark_as_sent()
                sent += 1

    logger.info("notification.batch_processed", sent=sent, failed=failed)
    return {"sent": sent, "failed": failed}
