"""
Invitation notices.

Delivery is best-effort: a notice is handed to the notifier only after the
issuing transaction has committed, and a failed hand-off is logged, never
raised. The production notifier passes a message to the worker, which owns
the SMTP conversation; the API process never talks to a mail server.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Protocol

from celery import Celery

from famifirst.core.config import settings
from famifirst.core.logging import get_logger

logger = get_logger(__name__)

SEND_INVITATION_TASK = "worker.tasks.send_invitation_email"


@dataclass(frozen=True)
class InvitationNotice:
    to_email: str
    family_name: str
    inviter_name: str
    role: str
    token: str

    @property
    def accept_link(self) -> str:
        return f"{settings.frontend_url.rstrip('/')}/accept-invite?token={self.token}"


class InvitationNotifier(Protocol):
    def send(self, notice: InvitationNotice) -> None: ...


class NullNotifier:
    def send(self, notice: InvitationNotice) -> None:
        logger.debug("Invitation notice for %s dropped (null notifier)", notice.to_email)


class CeleryNotifier:
    def __init__(self, broker_url: str, timeout_seconds: float):
        self._celery = Celery("famifirst_api", broker=broker_url)
        self._celery.conf.broker_connection_timeout = timeout_seconds
        self._celery.conf.task_ignore_result = True

    def send(self, notice: InvitationNotice) -> None:
        payload = asdict(notice)
        payload["accept_link"] = notice.accept_link
        self._celery.send_task(SEND_INVITATION_TASK, kwargs=payload, retry=False)


def dispatch_invitation_notice(notifier: InvitationNotifier, notice: InvitationNotice) -> bool:
    try:
        notifier.send(notice)
    except Exception:
        logger.warning("Could not dispatch invitation notice to %s", notice.to_email, exc_info=True)
        return False
    return True
