"""判定通知の配信"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Awaitable, Callable

import structlog

logger = structlog.stdlib.get_logger(__name__)


class NotificationType(StrEnum):
    """通知種別。"""

    DECISION = "DECISION"


@dataclass
class Notification:
    """配信される通知。"""

    notification_type: NotificationType
    payload: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NotificationHandler = Callable[[Notification], Awaitable[None]]


class NotificationCenter:
    """通知種別ごとのハンドラーへ通知を配信する。"""

    def __init__(self) -> None:
        self._handlers: dict[int, tuple[NotificationType, NotificationHandler]] = {}
        self._ids = itertools.count(1)

    def add_notification_listener(
        self, notification_type: NotificationType, handler: NotificationHandler
    ) -> int:
        """ハンドラーを登録し、解除用の ID を返す。"""
        listener_id = next(self._ids)
        self._handlers[listener_id] = (notification_type, handler)
        return listener_id

    def remove_notification_listener(self, listener_id: int) -> bool:
        return self._handlers.pop(listener_id, None) is not None

    def clear_notification_listeners(self, notification_type: NotificationType) -> None:
        self._handlers = {
            listener_id: entry
            for listener_id, entry in self._handlers.items()
            if entry[0] != notification_type
        }

    async def send_notifications(self, notification: Notification) -> None:
        """登録順にハンドラーを呼び出す。ハンドラーの失敗は他に影響しない。"""
        for notification_type, handler in list(self._handlers.values()):
            if notification_type != notification.notification_type:
                continue
            try:
                await handler(notification)
            except Exception as e:
                logger.error(
                    "notification_handler_failed",
                    notification_type=notification.notification_type.value,
                    error=str(e),
                )
