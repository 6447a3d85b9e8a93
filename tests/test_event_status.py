"""Unit tests for event status derivation."""

import pytest
from datetime import datetime, timezone

from common.utils.exceptions import InconsistencyException
from toople.models import EventStatus
from toople.services.events.status import (
    count_joined_before,
    derive_status,
    status_from_participations,
)


def utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


SCHEDULED = utc(2024, 6, 1)


# ─────────────────────────────────────────────────────────────────
# derive_status
# ─────────────────────────────────────────────────────────────────


class TestDeriveStatus:
    @pytest.mark.parametrize(
        "threshold,count,now,expected",
        [
            (3, 3, utc(2024, 5, 20), EventStatus.CONFIRMED),
            (3, 4, utc(2024, 5, 20), EventStatus.CONFIRMED),
            (3, 3, utc(2024, 7, 1), EventStatus.CONFIRMED),
            (3, 2, utc(2024, 5, 20), EventStatus.PENDING),
            (3, 2, utc(2024, 7, 1), EventStatus.CANCELLED),
            (1, 1, utc(2024, 7, 1), EventStatus.CONFIRMED),
            (1, 0, utc(2024, 5, 20), EventStatus.PENDING),
        ],
    )
    def test_status_grid(self, threshold, count, now, expected):
        assert derive_status(threshold, count, SCHEDULED, now) == expected

    def test_pending_at_exact_scheduled_time(self):
        # Cancelled only once the date is strictly in the past
        assert derive_status(3, 2, SCHEDULED, SCHEDULED) == EventStatus.PENDING

    def test_status_values_are_wire_strings(self):
        assert EventStatus.CONFIRMED.value == "Confirmed"
        assert EventStatus.PENDING == "Pending"


# ─────────────────────────────────────────────────────────────────
# count_joined_before
# ─────────────────────────────────────────────────────────────────


class TestCountJoinedBefore:
    def test_excludes_joins_on_or_after_the_date(self):
        joins = [utc(2024, 5, 1), utc(2024, 5, 15), SCHEDULED, utc(2024, 6, 10)]
        assert count_joined_before(joins, SCHEDULED) == 2


# ─────────────────────────────────────────────────────────────────
# status_from_participations
# ─────────────────────────────────────────────────────────────────


class TestStatusFromParticipations:
    def test_late_join_does_not_confirm(self):
        joins = [utc(2024, 5, 1), utc(2024, 5, 15), utc(2024, 6, 10)]
        status = status_from_participations("evt", 3, joins, SCHEDULED, utc(2024, 6, 11))
        assert status == EventStatus.CANCELLED

    def test_confirmed_stays_confirmed_after_the_date(self):
        joins = [utc(2024, 5, 1), utc(2024, 5, 15), utc(2024, 5, 20)]
        before = status_from_participations("evt", 3, joins, SCHEDULED, utc(2024, 5, 21))
        after = status_from_participations("evt", 3, joins, SCHEDULED, utc(2024, 8, 1))
        assert before == after == EventStatus.CONFIRMED

    def test_no_participants_is_inconsistent(self):
        with pytest.raises(InconsistencyException) as exc_info:
            status_from_participations("evt-1", 1, [], SCHEDULED, utc(2024, 5, 1))
        assert exc_info.value.code == "DATA_INCONSISTENCY"
        assert exc_info.value.details == {"eventId": "evt-1"}
