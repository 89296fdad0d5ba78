import logging
from datetime import datetime
from typing import Callable, Optional

from app.maintenance.application.ports import NotificationSink
from app.maintenance.domain.models import Notification, NotificationType, RelatedEntity

logger = logging.getLogger(__name__)

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


class Notifier:
    """Builds notifications and hands them to the sink.

    Delivery is best-effort: any failure is logged and swallowed so the
    caller's primary write stands.
    """

    def __init__(self, sink: NotificationSink, id_generator: IdGenerator, clock: Clock) -> None:
        self._sink = sink
        self._id_generator = id_generator
        self._clock = clock

    async def notify(
        self,
        user_id: Optional[str],
        type: NotificationType,
        title: str,
        message: str,
        related: Optional[RelatedEntity] = None,
    ) -> Optional[Notification]:
        if not user_id:
            return None
        try:
            notification = Notification(
                id=self._id_generator(),
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                related=related,
                is_read=False,
                created_at=self._clock(),
            )
            await self._sink.create(notification)
        except Exception:
            logger.exception("Could not deliver %s notification to user %s", type.value, user_id)
            return None
        return notification
