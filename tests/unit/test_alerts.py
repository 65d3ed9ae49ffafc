"""
Tests for notifications and the status badge.
"""
import pytest

from ghostleak.alerts import (
    BADGE_ACTIVE_COLOR,
    BADGE_DISABLED_COLOR,
    Badge,
    LogNotifier,
    badge_state,
    build_notification,
)
from ghostleak.data.models import ExposureKind, Finding

GIT_BODY = "[core]\n\tbare = false\n"


def _finding(kind=ExposureKind.GIT_CONFIG, url="https://a.test/.git/config"):
    return Finding(id=1, target="https://a.test", kind=kind, url=url, timestamp="2024-01-01T00:00:00.000Z")


class TestBadgeState:
    def test_disabled_shows_off(self):
        assert badge_state(False, 5) == Badge("OFF", BADGE_DISABLED_COLOR)

    def test_enabled_shows_count(self):
        assert badge_state(True, 3) == Badge("3", BADGE_ACTIVE_COLOR)

    def test_enabled_and_empty_is_blank(self):
        assert badge_state(True, 0) == Badge("", BADGE_ACTIVE_COLOR)


class TestBuildNotification:
    def test_git_notification(self):
        n = build_notification(_finding())
        assert n.title == ".git/config Exposed!"
        assert n.message == "Found on: https://a.test/.git/config"
        assert n.priority == 2

    def test_env_notification(self):
        n = build_notification(_finding(ExposureKind.ENV_FILE, "https://a.test/.env"))
        assert n.title == ".env Exposed!"


def test_log_notifier_keeps_recent_only():
    notifier = LogNotifier(maxlen=2)
    for i in range(3):
        notifier.notify(build_notification(_finding(url=f"https://a{i}.test/.git/config")))

    assert [n.message for n in notifier.recent] == [
        "Found on: https://a1.test/.git/config",
        "Found on: https://a2.test/.git/config",
    ]


@pytest.mark.asyncio
async def test_hub_tracks_findings_and_master_toggle(runtime, site):
    site.serve("https://a.test/.git/config", 200, GIT_BODY)
    await runtime.initialize()
    assert runtime.alerts.status.badge == Badge("", BADGE_ACTIVE_COLOR)

    await runtime.dispatcher.dispatch("https", "a.test")
    assert runtime.alerts.status.badge.text == "1"
    assert [n.title for n in runtime.alerts.recent_notifications()] == [".git/config Exposed!"]

    await runtime.settings.update(enabled=False)
    assert runtime.alerts.status.badge == Badge("OFF", BADGE_DISABLED_COLOR)

    await runtime.settings.update(enabled=True)
    await runtime.clear_all()
    assert runtime.alerts.status.badge.text == ""
