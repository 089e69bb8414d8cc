"""
bazaarscore/tests/test_decay.py

Unit tests for read-time point decay.
"""

import pytest

from bazaarscore.config import DECAY_POLICIES, MS_PER_DAY, DecayPolicy
from bazaarscore.protocol.decay import apply_decay, clamp, is_finite_number, next_decay_at, now_ms


NOW = 1_700_000_000_000
FORUM = DECAY_POLICIES["forum"]
POLICING = DECAY_POLICIES["communityPolicing"]
RELIABILITY = DECAY_POLICIES["reliability"]


def days_ago(days: float) -> int:
    return int(NOW - days * MS_PER_DAY)


# ============================================================================
# Test apply_decay
# ============================================================================

class TestApplyDecay:
    """Tests for apply_decay."""

    def test_no_activity_returns_points_unchanged(self):
        """A zero timestamp means no decay and no clamping."""
        assert apply_decay(3, 0, FORUM, 5, now=NOW) == 3
        assert apply_decay(7, 0, FORUM, 5, now=NOW) == 7

    def test_zero_points_unchanged(self):
        assert apply_decay(0, days_ago(500), FORUM, 5, now=NOW) == 0

    def test_within_grace_period_no_decay(self):
        assert apply_decay(5, days_ago(10), FORUM, 5, now=NOW) == 5

    def test_within_grace_period_clamps(self):
        """Inside the grace period the value is still bounded."""
        assert apply_decay(8, days_ago(10), FORUM, 5, now=NOW) == 5
        assert apply_decay(-8, days_ago(10), RELIABILITY, 5, -5, now=NOW) == -5

    def test_exactly_at_grace_boundary(self):
        assert apply_decay(5, days_ago(30), FORUM, 5, now=NOW) == 5

    def test_forum_45_days_no_full_period(self):
        """45 days: 15 days past grace is less than one 30-day period."""
        assert apply_decay(5, days_ago(45), FORUM, 5, now=NOW) == 5

    def test_forum_65_days_one_period(self):
        """65 days: floor(35 / 30) = 1 period of 0.5."""
        assert apply_decay(5, days_ago(65), FORUM, 5, now=NOW) == 4.5

    def test_forum_exactly_one_period(self):
        assert apply_decay(5, days_ago(60), FORUM, 5, now=NOW) == 4.5

    def test_reliability_negative_decays_toward_floor(self):
        """200 days: floor(110 / 30) = 3 periods of 0.25."""
        result = apply_decay(-3, days_ago(200), RELIABILITY, 5, -5, now=NOW)
        assert result == -3.75

    def test_reliability_positive_decays_below_zero(self):
        """Sign is not special-cased: +1 keeps decaying past zero."""
        # 90 + 6 * 30 = 270 days -> 6 periods -> 1 - 1.5
        result = apply_decay(1, days_ago(271), RELIABILITY, 5, -5, now=NOW)
        assert result == -0.5

    def test_decay_stops_at_floor(self):
        assert apply_decay(5, days_ago(1000), FORUM, 5, now=NOW) == 0
        assert apply_decay(5, days_ago(5000), RELIABILITY, 5, -5, now=NOW) == -5

    def test_policing_longer_grace(self):
        assert apply_decay(4, days_ago(89), POLICING, 5, now=NOW) == 4
        assert apply_decay(4, days_ago(91), POLICING, 5, now=NOW) == 3.75

    def test_steps_of_exactly_decay_rate(self):
        """Each full period past grace removes exactly decay_rate."""
        previous = None
        for k in range(0, 12):
            days = FORUM.grace_period_days + k * FORUM.decay_period_days + 0.5
            result = apply_decay(5, days_ago(days), FORUM, 5, now=NOW)
            assert result == max(0, 5 - k * FORUM.decay_rate)
            if previous is not None:
                assert result <= previous
            previous = result

    def test_monotonic_in_elapsed_time(self):
        values = [
            apply_decay(5, days_ago(d), RELIABILITY, 5, -5, now=NOW)
            for d in range(0, 1000, 7)
        ]
        assert values == sorted(values, reverse=True)

    def test_repeated_calls_are_deterministic(self):
        first = apply_decay(5, days_ago(123), FORUM, 5, now=NOW)
        for _ in range(5):
            assert apply_decay(5, days_ago(123), FORUM, 5, now=NOW) == first

    def test_reapplying_within_grace_is_stable(self):
        once = apply_decay(4, days_ago(20), FORUM, 5, now=NOW)
        twice = apply_decay(once, days_ago(20), FORUM, 5, now=NOW)
        assert once == twice

    def test_reapplying_at_floor_is_stable(self):
        once = apply_decay(5, days_ago(2000), FORUM, 5, now=NOW)
        assert apply_decay(once, days_ago(2000), FORUM, 5, now=NOW) == once

    def test_defaults_to_wall_clock(self):
        last = now_ms() - 65 * MS_PER_DAY
        assert apply_decay(5, last, FORUM, 5) == 4.5

    def test_custom_policy(self):
        policy = DecayPolicy(grace_period_days=1, decay_rate=1, decay_period_days=1)
        assert apply_decay(5, days_ago(4), policy, 5, now=NOW) == 2


# ============================================================================
# Test next_decay_at
# ============================================================================

class TestNextDecayAt:
    """Tests for next_decay_at."""

    def test_first_step_after_grace(self):
        last = days_ago(45)
        assert next_decay_at(5, last, FORUM, 5, now=NOW) == last + 60 * MS_PER_DAY

    def test_next_step_after_decay_started(self):
        last = days_ago(65)
        assert next_decay_at(5, last, FORUM, 5, now=NOW) == last + 90 * MS_PER_DAY

    def test_returned_time_is_in_future_and_decays(self):
        last = days_ago(65)
        at = next_decay_at(5, last, FORUM, 5, now=NOW)
        assert at > NOW
        assert apply_decay(5, last, FORUM, 5, now=at) < apply_decay(5, last, FORUM, 5, now=NOW)

    def test_no_activity(self):
        assert next_decay_at(5, 0, FORUM, 5, now=NOW) is None

    def test_zero_points(self):
        assert next_decay_at(0, days_ago(10), FORUM, 5, now=NOW) is None

    def test_at_floor(self):
        assert next_decay_at(5, days_ago(1000), FORUM, 5, now=NOW) is None
        assert next_decay_at(-5, days_ago(10), RELIABILITY, 5, -5, now=NOW) is None

    def test_skips_steps_hidden_by_clamp(self):
        """8 stored points clamp to 5 until 8 - 0.5n drops below 5 (n = 7)."""
        last = days_ago(10)
        assert next_decay_at(8, last, FORUM, 5, now=NOW) == last + (30 + 7 * 30) * MS_PER_DAY

    def test_zero_rate_never_decays(self):
        policy = DecayPolicy(grace_period_days=1, decay_rate=0, decay_period_days=1)
        assert next_decay_at(5, days_ago(10), policy, 5, now=NOW) is None


# ============================================================================
# Test out-of-range ledger values
# ============================================================================

BAD_TIMESTAMPS = [float('nan'), float('inf'), float('-inf'), 10 ** 400]


class TestOutOfRangeValues:
    """Huge or non-finite inputs are bounded and never stall."""

    def test_huge_points_clamped_after_decay(self):
        assert apply_decay(1e9, days_ago(100), FORUM, 5, now=NOW) == 5
        assert apply_decay(float('inf'), days_ago(100), FORUM, 5, now=NOW) == 5

    def test_huge_points_next_step_computed(self):
        """1e9 points need floor((1e9 - 5) / 0.5) + 1 steps to fall under 5."""
        last = days_ago(100)
        steps = 1_999_999_991
        expected = last + 30 * MS_PER_DAY + steps * 30 * MS_PER_DAY

        assert next_decay_at(1e9, last, FORUM, 5, now=NOW) == expected

    def test_enormous_points_still_return(self):
        at = next_decay_at(1e300, days_ago(100), FORUM, 5, now=NOW)
        assert isinstance(at, int)
        assert at > NOW

    def test_unrepresentable_step_count(self):
        assert next_decay_at(1e308, days_ago(100), POLICING, 5, now=NOW) is None

    @pytest.mark.parametrize("points", [float('inf'), float('-inf'), float('nan')])
    def test_non_finite_points_never_scheduled(self, points):
        assert next_decay_at(points, days_ago(100), FORUM, 5, now=NOW) is None

    @pytest.mark.parametrize("last_activity", BAD_TIMESTAMPS)
    def test_bad_timestamp_means_no_activity(self, last_activity):
        assert apply_decay(3, last_activity, FORUM, 5, now=NOW) == 3
        assert next_decay_at(3, last_activity, FORUM, 5, now=NOW) is None

    @pytest.mark.parametrize("points", [6, 12.5, 1e6, 1e9])
    def test_next_step_is_first_drop(self, points):
        """The returned step lowers the value and the step before it does not."""
        last = days_ago(100)
        current = apply_decay(points, last, FORUM, 5, now=NOW)
        at = next_decay_at(points, last, FORUM, 5, now=NOW)

        assert apply_decay(points, last, FORUM, 5, now=at) < current
        previous_step = at - 30 * MS_PER_DAY
        if previous_step > NOW:
            assert apply_decay(points, last, FORUM, 5, now=previous_step) == current


class TestIsFiniteNumber:

    @pytest.mark.parametrize("value", [0, -3, 2.5, 1e300, 10 ** 20])
    def test_finite(self, value):
        assert is_finite_number(value) is True

    @pytest.mark.parametrize("value", [
        float('nan'), float('inf'), float('-inf'), 10 ** 400, True, None, "5",
    ])
    def test_rejected(self, value):
        assert is_finite_number(value) is False


class TestClamp:
    """Tests for clamp."""

    @pytest.mark.parametrize("value,expected", [(-1, 0), (0, 0), (3, 3), (5, 5), (6, 5)])
    def test_clamp(self, value, expected):
        assert clamp(value, 0, 5) == expected
