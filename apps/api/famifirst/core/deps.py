from __future__ import annotations

from fastapi import Request

from famifirst.core.clock import Clock, SystemClock
from famifirst.services.notifications import InvitationNotifier, NullNotifier

_system_clock = SystemClock()


def get_clock() -> Clock:
    return _system_clock


def get_notifier(request: Request) -> InvitationNotifier:
    # Set during app startup; absent when the app is mounted without its lifespan.
    return getattr(request.app.state, "notifier", None) or NullNotifier()
