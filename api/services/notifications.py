# SPDX-License-Identifier: Apache-2.0

"""
Best-effort notification dispatch.

Lifecycle operations hand their notification requests to the dispatcher
after the state change is stored. Sends run on a thread pool; the caller
waits a bounded time and reports whatever finished. A failed send is a
reported outcome, never an exception.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from opentelemetry import trace

from domain.lifecycle import NotificationRequest
from models.enums import NotificationEvent
from .amqp import AMQPService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

BACKLOG_FULL = "Notification backlog full"


@dataclass
class DispatchOutcome:
    """Outcome of one notification send."""
    event: str
    success: bool
    error: Optional[str] = None


@dataclass
class NotificationStatus:
    """Aggregated outcome attached to an operation result."""
    success: bool = True
    errors: List[Dict[str, str]] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "errors": self.errors}
        if self.pending:
            data["pending"] = self.pending
        return data


class NotificationDispatcher:
    """Publishes notification events through AMQP on a worker pool."""

    def __init__(
        self,
        amqp_service: AMQPService,
        max_workers: int = 4,
        timeout: float = 2.0,
        max_backlog: int = 100
    ):
        self.amqp_service = amqp_service
        self.timeout = timeout
        self.max_backlog = max_backlog
        self._backlog = 0
        self._backlog_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="notification-dispatch"
        )

    def send(
        self,
        event: Union[NotificationEvent, str],
        channels: Dict[str, Optional[str]],
        payload: Dict[str, Any]
    ) -> DispatchOutcome:
        """
        Publish one notification event.

        Args:
            event: Notification event kind
            channels: Recipient contact channels (email, phone)
            payload: Event details for the delivery worker

        Returns:
            DispatchOutcome describing the send
        """
        event_name = getattr(event, "value", event)
        recipients = {k: v for k, v in (channels or {}).items() if v}

        if not recipients:
            logger.warning(
                "Notification skipped, recipient has no contact channel",
                extra={"extra_fields": {"event": event_name}}
            )
            return DispatchOutcome(event=event_name, success=False, error="No contact channel available")

        try:
            result = self.amqp_service.publish_event(
                event_name,
                {"recipient": recipients, "data": payload}
            )
        except Exception as e:
            logger.error(
                "Notification publish raised",
                extra={"extra_fields": {"event": event_name, "error": str(e)}},
                exc_info=True
            )
            return DispatchOutcome(event=event_name, success=False, error=str(e))

        if not result.success:
            return DispatchOutcome(event=event_name, success=False, error=result.error)
        return DispatchOutcome(event=event_name, success=True)

    def dispatch_all(self, requests: List[NotificationRequest]) -> NotificationStatus:
        """
        Send notifications concurrently and wait a bounded time for them.

        Sends still running at the timeout are reported as pending and keep
        running in the background. Sends beyond the backlog limit are not
        queued and are reported as errors.
        """
        status = NotificationStatus()
        if not requests:
            return status

        with tracer.start_as_current_span("notifications.dispatch_all") as span:
            span.set_attribute("notifications.count", len(requests))

            futures = [(self._submit(req), req) for req in requests]
            done, _ = wait([f for f, _ in futures if f is not None], timeout=self.timeout)

            for future, req in futures:
                event_name = getattr(req.event, "value", req.event)
                if future is None:
                    status.errors.append({"type": event_name, "error": BACKLOG_FULL})
                    continue
                if future not in done:
                    status.pending.append(event_name)
                    continue
                outcome = future.result()
                if not outcome.success:
                    status.errors.append({"type": outcome.event, "error": outcome.error})

            status.success = not status.errors and not status.pending
            span.set_attribute("notifications.success", status.success)

            if not status.success:
                logger.warning(
                    "Some notifications were not delivered",
                    extra={
                        "extra_fields": {
                            "errors": status.errors,
                            "pending": status.pending
                        }
                    }
                )

        return status

    def _submit(self, request: NotificationRequest) -> Optional[Future]:
        """Queue a send, or return None when the backlog is full."""
        with self._backlog_lock:
            if self._backlog >= self.max_backlog:
                logger.warning(
                    "Notification backlog full, send dropped",
                    extra={
                        "extra_fields": {
                            "event": getattr(request.event, "value", request.event),
                            "backlog": self._backlog
                        }
                    }
                )
                return None
            self._backlog += 1

        future = self._executor.submit(self.send, request.event, request.channels, request.payload)
        future.add_done_callback(self._release)
        return future

    def _release(self, _future: Future) -> None:
        with self._backlog_lock:
            self._backlog -= 1

    @property
    def backlog(self) -> int:
        """Sends queued or running."""
        with self._backlog_lock:
            return self._backlog

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending)
