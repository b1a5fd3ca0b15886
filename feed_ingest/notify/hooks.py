"""New content notification port and adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

import httpx
import structlog

from ..engine.normalizer import Post


@dataclass(slots=True)
class NewContentEvent:
    """Broadcast payload: total new post count plus a bounded preview."""

    count: int
    posts: list[Post] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "posts": [
                {**post.to_record(), "publisherName": post.publisher_name} for post in self.posts
            ],
        }


class NotificationHook(ABC):
    """Fire-and-forget receiver of new content events."""

    @abstractmethod
    def notify(self, event: NewContentEvent) -> None:
        """Deliver the event. Errors may propagate; the caller absorbs them."""

    def close(self) -> None:
        """Release transport resources; most hooks hold none."""


class NullNotificationHook(NotificationHook):
    def notify(self, event: NewContentEvent) -> None:
        return


class LoggingNotificationHook(NotificationHook):
    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("feed_ingest.notify")

    def notify(self, event: NewContentEvent) -> None:
        self.logger.info(
            "new_content",
            count=event.count,
            preview=[post.title for post in event.posts],
        )


class CallbackNotificationHook(NotificationHook):
    """Adapter for in-process subscribers (e.g. a websocket broadcaster)."""

    def __init__(self, callback: Callable[[NewContentEvent], Any]) -> None:
        self.callback = callback

    def notify(self, event: NewContentEvent) -> None:
        self.callback(event)


class WebhookNotificationHook(NotificationHook):
    """POST the event as JSON to a push endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)
        self.logger = logger or structlog.get_logger("feed_ingest.notify")

    def notify(self, event: NewContentEvent) -> None:
        response = self._client.post(self.url, json=event.to_payload(), timeout=self.timeout)
        response.raise_for_status()
        self.logger.info("webhook_delivered", url=self.url, status=response.status_code)

    def close(self) -> None:
        self._client.close()


class CompositeNotificationHook(NotificationHook):
    """Fan out to several hooks; one failing hook does not stop the others."""

    def __init__(
        self,
        hooks: Iterable[NotificationHook],
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.hooks = list(hooks)
        self.logger = logger or structlog.get_logger("feed_ingest.notify")

    def notify(self, event: NewContentEvent) -> None:
        for hook in self.hooks:
            try:
                hook.notify(event)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning(
                    "notification_hook_failed", hook=type(hook).__name__, error=str(exc)
                )

    def close(self) -> None:
        for hook in self.hooks:
            hook.close()


__all__ = [
    "CallbackNotificationHook",
    "CompositeNotificationHook",
    "LoggingNotificationHook",
    "NewContentEvent",
    "NotificationHook",
    "NullNotificationHook",
    "WebhookNotificationHook",
]
