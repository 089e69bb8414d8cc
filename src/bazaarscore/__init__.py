"""
bazaarscore - Participation scoring for the marketplace network

Turns a user's activity (referrals, publishing, forum, marketplace,
community policing, validator reliability) into a 0-100 participation score
that gates listing-node and validator roles.

Usage:
    from bazaarscore import ParticipationService, ParticipationConfig

    service = ParticipationService(ParticipationConfig.from_env())
    await service.start()

    score = await service.get_score("0xabc...")
    if score.qualified_as_listing_node:
        ...

    # Report activity (evicts the cached score)
    await service.track_referral("0xabc...", "0xdef...")

Metrics Usage:
    prometheus_output = service.metrics.collect()
"""

from .service import ParticipationService
from .cache import ScoreCache
from .metrics import ScoreMetrics
from .ledger import LedgerClient, LedgerError
from .collaborators import (
    StakingProvider,
    KYCProvider,
    NullStakingProvider,
    NullKYCProvider,
    StaticStakingProvider,
    StaticKYCProvider,
)
from .config import (
    ParticipationConfig,
    DecayPolicy,
    DECAY_POLICIES,
    PUBLISHING_THRESHOLDS,
    VALIDATOR_MIN_SCORE,
    LISTING_NODE_MIN_SCORE,
    VALIDATOR_REQUIRED_STAKE,
)
from .protocol import (
    ParticipationScore,
    ParticipationComponents,
    ActivityEvent,
    ReferralEvent,
    PublishingEvent,
    ForumEvent,
    MarketplaceEvent,
    PolicingEvent,
    ReliabilityEvent,
    ListingNodeQualification,
    ValidatorQualification,
    LeaderboardEntry,
    apply_decay,
    calculate_score,
    default_score,
)

__version__ = "1.0.0"
__all__ = [
    # Core
    "ParticipationService",
    "ScoreCache",
    "ScoreMetrics",
    # Ledger
    "LedgerClient",
    "LedgerError",
    # Collaborators
    "StakingProvider",
    "KYCProvider",
    "NullStakingProvider",
    "NullKYCProvider",
    "StaticStakingProvider",
    "StaticKYCProvider",
    # Config
    "ParticipationConfig",
    "DecayPolicy",
    "DECAY_POLICIES",
    "PUBLISHING_THRESHOLDS",
    "VALIDATOR_MIN_SCORE",
    "LISTING_NODE_MIN_SCORE",
    "VALIDATOR_REQUIRED_STAKE",
    # Scoring
    "ParticipationScore",
    "ParticipationComponents",
    "ListingNodeQualification",
    "ValidatorQualification",
    "LeaderboardEntry",
    "apply_decay",
    "calculate_score",
    "default_score",
    # Activity
    "ActivityEvent",
    "ReferralEvent",
    "PublishingEvent",
    "ForumEvent",
    "MarketplaceEvent",
    "PolicingEvent",
    "ReliabilityEvent",
]
