"""
bazaarscore/protocol/

Scoring rules: decay, component scorers, aggregation, qualification,
leaderboard ranking and activity events.
"""

from .decay import apply_decay, next_decay_at, clamp, is_finite_number
from .participation import (
    ParticipationScore,
    ParticipationComponents,
    ReferralComponent,
    PublishingComponent,
    ForumComponent,
    MarketplaceComponent,
    PolicingComponent,
    ReliabilityComponent,
    score_referrals,
    score_publishing,
    score_forum,
    score_marketplace,
    score_policing,
    score_reliability,
    aggregate,
    calculate_score,
    default_score,
    is_participation_record,
)
from .activity import (
    ActivityEvent,
    ActivityType,
    ReferralEvent,
    PublishingEvent,
    ForumEvent,
    MarketplaceEvent,
    PolicingEvent,
    ReliabilityEvent,
    event_from_dict,
    build_event,
)
from .qualification import (
    ListingNodeQualification,
    ValidatorQualification,
    ValidatorRequirements,
    evaluate_listing_node,
    evaluate_validator,
)
from .leaderboard import LeaderboardEntry, rank_entries

__all__ = [
    # Decay
    "apply_decay",
    "next_decay_at",
    "clamp",
    "is_finite_number",
    # Scores
    "ParticipationScore",
    "ParticipationComponents",
    "ReferralComponent",
    "PublishingComponent",
    "ForumComponent",
    "MarketplaceComponent",
    "PolicingComponent",
    "ReliabilityComponent",
    "score_referrals",
    "score_publishing",
    "score_forum",
    "score_marketplace",
    "score_policing",
    "score_reliability",
    "aggregate",
    "calculate_score",
    "default_score",
    "is_participation_record",
    # Activity
    "ActivityEvent",
    "ActivityType",
    "ReferralEvent",
    "PublishingEvent",
    "ForumEvent",
    "MarketplaceEvent",
    "PolicingEvent",
    "ReliabilityEvent",
    "event_from_dict",
    "build_event",
    # Qualification
    "ListingNodeQualification",
    "ValidatorQualification",
    "ValidatorRequirements",
    "evaluate_listing_node",
    "evaluate_validator",
    # Leaderboard
    "LeaderboardEntry",
    "rank_entries",
]
