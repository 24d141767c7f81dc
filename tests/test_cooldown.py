"""Tests for the reapply cooldown."""

from datetime import datetime, timedelta

import pytest

from farmwork.domain.cooldown import (
    REAPPLY_COOLDOWN_HOURS,
    application_can_reapply,
    can_reapply,
    hours_since,
    hours_until_reapply,
)
from farmwork.domain.models import Application
from farmwork.domain.states import ApplicationStatus

from conftest import NOW


def rejected(hours_ago, **overrides):
    values = dict(
        id="app-1",
        job_id="job-1",
        worker_id="worker-1",
        status=ApplicationStatus.REJECTED,
        rejected_at=NOW - timedelta(hours=hours_ago),
    )
    values.update(overrides)
    return Application(**values)


class TestCooldownClock:
    def test_default_window(self):
        assert REAPPLY_COOLDOWN_HOURS == 24

    def test_hours_since(self):
        assert hours_since(NOW - timedelta(hours=5, minutes=30), NOW) == pytest.approx(5.5)

    def test_blocked_at_23_hours(self):
        rejected_at = NOW - timedelta(hours=23)
        assert not can_reapply(rejected_at, NOW)
        assert hours_until_reapply(rejected_at, NOW) == 1

    def test_allowed_at_exactly_24_hours(self):
        rejected_at = NOW - timedelta(hours=24)
        assert can_reapply(rejected_at, NOW)
        assert hours_until_reapply(rejected_at, NOW) == 0

    def test_hours_left_rounds_up(self):
        # 0.5h elapsed -> 23.5h left -> told 24
        assert hours_until_reapply(NOW - timedelta(minutes=30), NOW) == 24
        assert hours_until_reapply(NOW - timedelta(hours=23, minutes=59), NOW) == 1

    def test_long_ago(self):
        assert hours_until_reapply(NOW - timedelta(days=30), NOW) == 0

    def test_naive_timestamps_are_utc(self):
        naive = (NOW - timedelta(hours=2)).replace(tzinfo=None)
        assert hours_since(naive, NOW) == pytest.approx(2)


class TestApplicationCanReapply:
    def test_rejected_after_window(self):
        assert application_can_reapply(rejected(25), NOW)

    def test_rejected_inside_window(self):
        assert not application_can_reapply(rejected(1), NOW)

    @pytest.mark.parametrize("status", [ApplicationStatus.PENDING, ApplicationStatus.ACCEPTED])
    def test_only_rejected_applications_reapply(self, status):
        assert not application_can_reapply(rejected(100, status=status), NOW)

    def test_rejected_without_timestamp(self):
        app = rejected(0, rejected_at=None)
        assert application_can_reapply(app, NOW)

    def test_now_defaults_to_wall_clock(self):
        app = rejected(0, rejected_at=datetime.now(NOW.tzinfo) - timedelta(hours=48))
        assert application_can_reapply(app)
