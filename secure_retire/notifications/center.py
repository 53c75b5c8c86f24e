"""
Notification Center

In-app notifications for one user, plus a polling loop used as the
fallback when no realtime channel is subscribed.

DESIGN DECISION: The poller only reports notifications it has not seen
before, so a listener is called once per new unread item no matter how
often the loop runs.
"""

import asyncio
from datetime import date
from typing import Awaitable, Callable, Optional, Union
from uuid import UUID

import structlog

from secure_retire.config import get_settings
from secure_retire.models.account import Notification, NotificationType
from secure_retire.models.documents import StoredDocument
from secure_retire.services.storage import AccountStorageInterface, StorageError


logger = structlog.get_logger(__name__)

Listener = Callable[[list[Notification]], Union[None, Awaitable[None]]]

LOW_CREDITS_TITLE = "Credits running low"


def renewal_message(document: StoredDocument, today: date) -> str:
    days = document.days_until_renewal(today)
    if days is None:
        return f"{document.name} has no renewal date"
    if days < 0:
        return f"{document.name} expired {abs(days)} day(s) ago"
    if days == 0:
        return f"{document.name} is due for renewal today"
    return f"{document.name} is due for renewal in {days} day(s)"


class NotificationCenter:
    """List, create and acknowledge a user's notifications."""

    def __init__(self, user_id: UUID, storage: AccountStorageInterface):
        self._user_id = user_id
        self._storage = storage

    async def recent(self, limit: int = 50) -> list[Notification]:
        return await self._storage.list_notifications(self._user_id, limit=limit)

    async def unread(self) -> list[Notification]:
        return [n for n in await self.recent() if not n.read]

    async def unread_count(self) -> int:
        return len(await self.unread())

    async def create(
        self,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        link: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            user_id=self._user_id,
            title=title,
            message=message,
            type=type,
            link=link,
        )
        await self._storage.save_notification(notification)
        return notification

    async def mark_read(self, notification_id: UUID) -> bool:
        return await self._storage.mark_notification_read(notification_id)

    async def mark_all_read(self) -> int:
        return await self._storage.mark_all_notifications_read(self._user_id)

    async def clear(self) -> int:
        return await self._storage.clear_notifications(self._user_id)

    async def notify_renewals(
        self,
        documents: list[StoredDocument],
        today: Optional[date] = None,
    ) -> list[Notification]:
        """
        One warning per document coming up for renewal.

        Documents that already have an unread reminder with the same
        title are skipped.
        """
        today = today or date.today()
        existing = {n.title for n in await self.unread()}
        created = []
        for document in documents:
            title = f"Renewal due: {document.name}"[:200]
            if title in existing:
                continue
            created.append(await self.create(
                title=title,
                message=renewal_message(document, today),
                type=NotificationType.WARNING,
            ))
        return created

    async def notify_low_credits(self, remaining: int) -> Optional[Notification]:
        """Skipped while an earlier warning is still unread."""
        if any(n.title == LOW_CREDITS_TITLE for n in await self.unread()):
            return None
        return await self.create(
            title=LOW_CREDITS_TITLE,
            message=f"You have {remaining} credit(s) left this month. Upgrade to Pro for unlimited access.",
            type=NotificationType.WARNING,
        )


class NotificationPoller:
    """
    Periodic refresh of a NotificationCenter.

    Usage:
        poller = NotificationPoller(center, on_new=handle)
        poller.start()
        ...
        await poller.stop()
    """

    def __init__(
        self,
        center: NotificationCenter,
        on_new: Optional[Listener] = None,
        interval_seconds: Optional[float] = None,
    ):
        self._center = center
        self._on_new = on_new
        self.interval = (
            interval_seconds
            if interval_seconds is not None
            else get_settings().app.notification_poll_seconds
        )
        self._seen: set[UUID] = set()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def prime(self) -> int:
        """Mark what is unread now as seen, so only later arrivals are reported."""
        unread = await self._center.unread()
        self._seen.update(n.id for n in unread)
        return len(unread)

    async def poll_once(self) -> list[Notification]:
        """Fetch once; returns unread notifications not reported before."""
        unread = await self._center.unread()
        fresh = [n for n in unread if n.id not in self._seen]
        self._seen.update(n.id for n in fresh)

        if fresh and self._on_new is not None:
            result = self._on_new(fresh)
            if asyncio.iscoroutine(result):
                await result
        return fresh

    async def _run(self) -> None:
        # Neither a storage error nor a failing listener ends the loop
        while True:
            try:
                await self.poll_once()
            except StorageError as e:
                logger.warning("notification_poll_failed", error=str(e))
            except Exception as e:
                logger.error("notification_listener_failed", error=str(e), exc_info=True)
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if not self.is_running:
            self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning("notification_poller_ended_with_error", error=str(e))
