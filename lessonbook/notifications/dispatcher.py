import asyncio
import logging
from typing import Iterable, Optional, Set

from lessonbook.notifications.notifier import Notifier, OutboundEmail, build_notifier

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget delivery of mail produced by committed operations.

    Call dispatch() only after the transaction has committed. Each message is
    delivered in its own task; failures are logged and dropped, with no retry.
    """

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier
        self._pending: Set[asyncio.Task] = set()

    def dispatch(self, messages: Iterable[OutboundEmail]) -> None:
        loop = asyncio.get_running_loop()
        for message in messages:
            task = loop.create_task(self._deliver(message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, message: OutboundEmail) -> None:
        try:
            ok = await self.notifier.notify(message.to, message.subject, message.body)
        except Exception:
            logger.exception("notification_failed to=%s subject=%s", message.to, message.subject)
            return
        if not ok:
            logger.error("notification_rejected to=%s subject=%s", message.to, message.subject)

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(build_notifier())
    return _dispatcher
