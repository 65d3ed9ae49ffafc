"""
ghostleak/alerts.py
User-visible side effects: one notification per new finding, and the status
badge ("OFF" when disabled, otherwise the finding count).

Both are fire-and-forget from the core's point of view. Delivery goes through
two small protocols so a desktop notifier or a browser bridge can be plugged
in; the defaults only log and remember.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, asdict
from typing import Any, Deque, Dict, List, Optional, Protocol

from ghostleak.data.kv_store import KEY_ENABLED
from ghostleak.data.models import Finding

logger = logging.getLogger(__name__)

BADGE_DISABLED_COLOR = "#666666"
BADGE_ACTIVE_COLOR = "#dc3545"


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    priority: int = 2
    finding_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Badge:
    text: str
    color: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def build_notification(finding: Finding) -> Notification:
    return Notification(
        title=f"{finding.kind.label} Exposed!",
        message=f"Found on: {finding.url}",
        priority=2,
        finding_id=finding.id,
    )


def badge_state(enabled: bool, finding_count: int) -> Badge:
    if not enabled:
        return Badge("OFF", BADGE_DISABLED_COLOR)
    return Badge(str(finding_count) if finding_count > 0 else "", BADGE_ACTIVE_COLOR)


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class StatusSink(Protocol):
    def set_badge(self, badge: Badge) -> None: ...


class LogNotifier:
    """Writes notifications to the log and keeps the most recent ones."""

    def __init__(self, maxlen: int = 50):
        self.recent: Deque[Notification] = deque(maxlen=maxlen)

    def notify(self, notification: Notification) -> None:
        logger.warning(f"[Alert] {notification.title} {notification.message}")
        self.recent.append(notification)


class MemoryStatusSink:
    def __init__(self) -> None:
        self.badge = Badge("", BADGE_ACTIVE_COLOR)

    def set_badge(self, badge: Badge) -> None:
        if badge != self.badge:
            logger.debug(f"[Badge] {badge.text or '-'}")
        self.badge = badge


class AlertHub:
    """
    Routes core events to the notifier and the status sink.

    Connected to the dispatcher's finding_recorded signal, the finding
    store's findings_changed signal and the settings' settings_changed signal.
    """

    def __init__(self, settings, findings, notifier: Optional[Notifier] = None, status: Optional[StatusSink] = None):
        self._settings = settings
        self._findings = findings
        self.notifier = notifier or LogNotifier()
        self.status = status or MemoryStatusSink()

    def attach(self, dispatcher) -> None:
        dispatcher.finding_recorded.connect(self.on_finding_recorded)
        self._findings.findings_changed.connect(self.refresh_badge)
        self._settings.settings_changed.connect(self.on_setting_changed)
        self.refresh_badge()

    def on_finding_recorded(self, finding: Finding) -> None:
        self.notifier.notify(build_notification(finding))

    def on_setting_changed(self, key: str, value: bool) -> None:
        if key == KEY_ENABLED:
            self.refresh_badge()

    def refresh_badge(self) -> None:
        self.status.set_badge(self.current_badge())

    def current_badge(self) -> Badge:
        return badge_state(self._settings.enabled, len(self._findings))

    def recent_notifications(self) -> List[Notification]:
        return list(getattr(self.notifier, "recent", []))
