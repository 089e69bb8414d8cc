"""
bazaarscore/protocol/decay.py

Read-time decay of component points.

Decay is never applied by a background job. Every read computes the
effective value from the stored points, the last activity timestamp and the
wall clock, so repeated reads at the same instant always agree:

    days_since = (now - last_activity) / 1 day
    periods    = floor((days_since - grace) / decay_period)   once past grace
    points'    = clamp(points - periods * decay_rate, min, max)
"""

import math
import time
from typing import Optional

from ..config import DecayPolicy, MS_PER_DAY


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def clamp(value: float, min_value: float, max_value: float) -> float:
    """Clamp value to [min_value, max_value]."""
    return min(max_value, max(min_value, value))


def is_finite_number(value) -> bool:
    """True for an int or float that converts to a finite float (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def apply_decay(
    points: float,
    last_activity: int,
    policy: DecayPolicy,
    max_points: float,
    min_points: float = 0,
    now: Optional[int] = None,
) -> float:
    """
    Apply time-based decay to a component's points.

    Args:
        points: Points value reported by the ledger
        last_activity: Last qualifying activity (epoch ms); 0 or a non-finite
            value means never
        policy: Decay policy for the component
        max_points: Upper bound for the component
        min_points: Lower bound for the component
        now: Evaluation instant (epoch ms), defaults to the wall clock

    Returns:
        Effective points at ``now``
    """
    if not last_activity or points == 0 or not is_finite_number(last_activity):
        return points

    if now is None:
        now = now_ms()

    days_since = (now - last_activity) / MS_PER_DAY

    if days_since <= policy.grace_period_days:
        return clamp(points, min_points, max_points)

    periods = math.floor(
        (days_since - policy.grace_period_days) / policy.decay_period_days
    )
    decayed = points - periods * policy.decay_rate

    return clamp(decayed, min_points, max_points)


def next_decay_at(
    points: float,
    last_activity: int,
    policy: DecayPolicy,
    max_points: float,
    min_points: float = 0,
    now: Optional[int] = None,
) -> Optional[int]:
    """
    Timestamp (epoch ms) at which the effective value next drops.

    Returns None when the value cannot decay any further: no activity was
    ever recorded, the stored points are zero or not finite, or the
    effective value is already at min_points. Points above max_points take as
    many steps as they need to come back under the clamp.
    """
    if not last_activity or points == 0 or policy.decay_rate <= 0:
        return None
    if not is_finite_number(points) or not is_finite_number(last_activity):
        return None

    if now is None:
        now = now_ms()

    current = apply_decay(points, last_activity, policy, max_points, min_points, now)
    if current <= min_points:
        return None

    grace_end = last_activity + policy.grace_period_days * MS_PER_DAY
    period_ms = policy.decay_period_days * MS_PER_DAY

    # Step n lands once days_since exceeds grace by n full periods
    if now < grace_end + period_ms:
        step = 1
    else:
        step = math.floor((now - grace_end) / period_ms) + 1

    # A value above max_points stays clamped until points - n * rate drops
    # below the current value, which can be many steps out.
    needed = (points - current) / policy.decay_rate
    if not math.isfinite(needed):
        return None
    needed = math.floor(needed) + 1
    if points - needed * policy.decay_rate >= current:
        needed += 1

    return int(math.ceil(grace_end + max(step, needed) * period_ms))
