"""
bazaarscore/config.py

Configuration constants and data classes for bazaarscore.

Decay policies and qualification thresholds live here as an explicit table
so that scoring code receives policy as data instead of hardcoding it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging
import os

logger = logging.getLogger("bazaarscore.config")


# Time
MS_PER_DAY = 24 * 60 * 60 * 1000

# Cached scores are considered fresh for 5 minutes
SCORE_CACHE_TTL_MS = 5 * 60 * 1000

# Informational next-decay hint when nothing is decaying
NEXT_DECAY_FALLBACK_MS = MS_PER_DAY

# Total score bounds
SCORE_MIN = 0
SCORE_MAX = 100

# Component bounds
REFERRAL_POINTS_MAX = 10
ACTIVITY_POINTS_MAX = 5             # forum, marketplace, policing
RELIABILITY_POINTS_MAX = 5
RELIABILITY_POINTS_MIN = -5

# Listings published -> points (ascending)
PUBLISHING_THRESHOLDS: List[Tuple[int, int]] = [
    (100, 1),
    (1000, 2),
    (10000, 3),
    (100000, 4),
]

# Qualification tiers
VALIDATOR_MIN_SCORE = 50
LISTING_NODE_MIN_SCORE = 25
VALIDATOR_REQUIRED_STAKE = 1_000_000

# Ledger API
DEFAULT_LEDGER_ENDPOINT = "http://localhost:3001/api/participation"
REQUEST_TIMEOUT = 10                # seconds
DEFAULT_LEADERBOARD_LIMIT = 100

# Environment overrides
ENV_LEDGER_ENDPOINT = "BAZAARSCORE_LEDGER_ENDPOINT"
ENV_REQUEST_TIMEOUT = "BAZAARSCORE_REQUEST_TIMEOUT"
ENV_CACHE_TTL = "BAZAARSCORE_CACHE_TTL"  # seconds


@dataclass(frozen=True)
class DecayPolicy:
    """
    Time-based decay settings for one component.

    Points are untouched for grace_period_days after the last activity,
    then drop by decay_rate every full decay_period_days, never below
    min_points.
    """
    grace_period_days: float
    decay_rate: float
    decay_period_days: float
    min_points: float = 0

    def __post_init__(self):
        if self.decay_period_days <= 0:
            raise ValueError(f"decay_period_days must be positive, got {self.decay_period_days}")
        if self.grace_period_days < 0:
            raise ValueError(f"grace_period_days cannot be negative, got {self.grace_period_days}")

    def to_dict(self) -> dict:
        return {
            'gracePeriodDays': self.grace_period_days,
            'decayRate': self.decay_rate,
            'decayPeriodDays': self.decay_period_days,
            'minPoints': self.min_points,
        }


DECAY_POLICIES: Dict[str, DecayPolicy] = {
    "forum": DecayPolicy(
        grace_period_days=30,
        decay_rate=0.5,
        decay_period_days=30,
        min_points=0,
    ),
    "marketplace": DecayPolicy(
        grace_period_days=30,
        decay_rate=0.5,
        decay_period_days=30,
        min_points=0,
    ),
    "communityPolicing": DecayPolicy(
        grace_period_days=60,
        decay_rate=0.25,
        decay_period_days=30,
        min_points=0,
    ),
    "reliability": DecayPolicy(
        grace_period_days=90,
        decay_rate=0.25,
        decay_period_days=30,
        min_points=RELIABILITY_POINTS_MIN,
    ),
}


@dataclass
class ParticipationConfig:
    """
    Runtime configuration for the participation service.

    Usage:
        config = ParticipationConfig(ledger_endpoint="https://ledger.example/api")

        # Or pick up BAZAARSCORE_* environment variables
        config = ParticipationConfig.from_env()
    """

    # Ledger REST API
    ledger_endpoint: str = DEFAULT_LEDGER_ENDPOINT

    # Network timeout (seconds) for every ledger request
    request_timeout: float = REQUEST_TIMEOUT

    # Score cache freshness window
    cache_ttl_ms: int = SCORE_CACHE_TTL_MS

    # Per-component decay table
    decay_policies: Dict[str, DecayPolicy] = field(
        default_factory=lambda: dict(DECAY_POLICIES)
    )

    def __post_init__(self):
        self.ledger_endpoint = self.ledger_endpoint.rstrip("/")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.cache_ttl_ms < 0:
            raise ValueError(f"cache_ttl_ms cannot be negative, got {self.cache_ttl_ms}")
        missing = set(DECAY_POLICIES) - set(self.decay_policies)
        if missing:
            raise ValueError(f"Missing decay policies: {sorted(missing)}")

    @classmethod
    def from_env(
        cls,
        ledger_endpoint: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ) -> "ParticipationConfig":
        """
        Build a configuration from the environment.

        Explicit arguments win over environment variables, which win over
        defaults. Unparsable environment values are logged and ignored.
        """
        endpoint = ledger_endpoint or os.environ.get(ENV_LEDGER_ENDPOINT) or DEFAULT_LEDGER_ENDPOINT

        timeout = request_timeout
        if timeout is None:
            timeout = _env_float(ENV_REQUEST_TIMEOUT, REQUEST_TIMEOUT)

        cache_ttl_ms = SCORE_CACHE_TTL_MS
        ttl_seconds = _env_float(ENV_CACHE_TTL, None)
        if ttl_seconds is not None:
            cache_ttl_ms = int(ttl_seconds * 1000)

        return cls(
            ledger_endpoint=endpoint,
            request_timeout=timeout,
            cache_ttl_ms=cache_ttl_ms,
        )

    def to_dict(self) -> dict:
        return {
            'ledger_endpoint': self.ledger_endpoint,
            'request_timeout': self.request_timeout,
            'cache_ttl_ms': self.cache_ttl_ms,
            'decay_policies': {
                name: policy.to_dict() for name, policy in self.decay_policies.items()
            },
        }


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"Invalid {name}={value!r}, using default")
        return default
    if parsed < 0:
        logger.warning(f"Negative {name}={value!r}, using default")
        return default
    return parsed
