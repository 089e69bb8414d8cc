"""
bazaarscore/protocol/participation.py

Participation score model, per-component scorers and the aggregator.

Score Components:
    - Referrals:            0-10 points (1 point per referral, max 10)
    - Publishing:           0-4 points (100/1000/10000/100000 listings)
    - Forum Activity:       0-5 points, decays after 30 days
    - Marketplace Activity: 0-5 points, decays after 30 days
    - Community Policing:   0-5 points, decays after 60 days
    - Reliability:          -5 to +5 points, decays after 90 days toward -5

Total score is the clamped sum of the six components (0-100).

Qualification:
    >= 50: eligible to run a validator (plus KYC and stake)
    >= 25: eligible to run a listing node

Raw counters are owned by the external ledger and only ever read here.
Scores are derived on demand and never persisted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..config import (
    ACTIVITY_POINTS_MAX,
    DECAY_POLICIES,
    DecayPolicy,
    LISTING_NODE_MIN_SCORE,
    NEXT_DECAY_FALLBACK_MS,
    PUBLISHING_THRESHOLDS,
    REFERRAL_POINTS_MAX,
    RELIABILITY_POINTS_MAX,
    RELIABILITY_POINTS_MIN,
    SCORE_MAX,
    SCORE_MIN,
    VALIDATOR_MIN_SCORE,
)
from .decay import apply_decay, clamp, is_finite_number, next_decay_at, now_ms

logger = logging.getLogger(__name__)


# Wire names of the six components, in scoring order
COMPONENT_KEYS = (
    "referrals",
    "publishing",
    "forumActivity",
    "marketplaceActivity",
    "communityPolicing",
    "reliability",
)


# ============================================================================
# WIRE HELPERS
# ============================================================================

def _number(section: Optional[Mapping[str, Any]], key: str) -> float:
    """Read a numeric field, treating missing, non-numeric or non-finite values as 0."""
    if not section:
        return 0
    value = section.get(key)
    if not is_finite_number(value):
        return 0
    return value


def _section(data: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def is_participation_record(data: Any) -> bool:
    """
    Check that a ledger response has the expected shape.

    Every component is optional, but a present component must be an object.
    """
    if not isinstance(data, dict):
        return False
    for key in COMPONENT_KEYS:
        if key in data and not isinstance(data[key], dict):
            return False
    return True


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class ReferralComponent:
    """Referrals made (0-10 points, never decays)."""
    count: int = 0
    points: float = 0

    def to_dict(self) -> dict:
        return {'count': self.count, 'points': self.points}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ReferralComponent":
        return cls(count=_number(data, 'count'), points=_number(data, 'points'))


@dataclass
class PublishingComponent:
    """Listings published on behalf of others (0-4 points)."""
    listings_published: int = 0
    points: float = 0

    def to_dict(self) -> dict:
        return {'listingsPublished': self.listings_published, 'points': self.points}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PublishingComponent":
        return cls(
            listings_published=_number(data, 'listingsPublished'),
            points=_number(data, 'points'),
        )


@dataclass
class ForumComponent:
    """Forum engagement (0-5 points, decaying)."""
    questions_answered: int = 0
    helpful_votes: int = 0
    last_activity_date: int = 0
    points: float = 0

    def to_dict(self) -> dict:
        return {
            'questionsAnswered': self.questions_answered,
            'helpfulVotes': self.helpful_votes,
            'lastActivityDate': self.last_activity_date,
            'points': self.points,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ForumComponent":
        return cls(
            questions_answered=_number(data, 'questionsAnswered'),
            helpful_votes=_number(data, 'helpfulVotes'),
            last_activity_date=_number(data, 'lastActivityDate'),
            points=_number(data, 'points'),
        )


@dataclass
class MarketplaceComponent:
    """Marketplace transactions (0-5 points, decaying)."""
    buy_transactions: int = 0
    sell_transactions: int = 0
    last_transaction_date: int = 0
    points: float = 0

    def to_dict(self) -> dict:
        return {
            'buyTransactions': self.buy_transactions,
            'sellTransactions': self.sell_transactions,
            'lastTransactionDate': self.last_transaction_date,
            'points': self.points,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "MarketplaceComponent":
        return cls(
            buy_transactions=_number(data, 'buyTransactions'),
            sell_transactions=_number(data, 'sellTransactions'),
            last_transaction_date=_number(data, 'lastTransactionDate'),
            points=_number(data, 'points'),
        )


@dataclass
class PolicingComponent:
    """Community policing reports (0-5 points, decaying)."""
    reports_submitted: int = 0
    reports_verified: int = 0
    last_report_date: int = 0
    points: float = 0

    def to_dict(self) -> dict:
        return {
            'reportsSubmitted': self.reports_submitted,
            'reportsVerified': self.reports_verified,
            'lastReportDate': self.last_report_date,
            'points': self.points,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PolicingComponent":
        return cls(
            reports_submitted=_number(data, 'reportsSubmitted'),
            reports_verified=_number(data, 'reportsVerified'),
            last_report_date=_number(data, 'lastReportDate'),
            points=_number(data, 'points'),
        )


@dataclass
class ReliabilityComponent:
    """Validator / arbitrator reliability (-5 to +5 points, decaying toward -5)."""
    successful_validations: int = 0
    failed_validations: int = 0
    disputes_as_arbitrator: int = 0
    disputes_resolved: int = 0
    last_activity_date: int = 0
    points: float = 0

    def to_dict(self) -> dict:
        return {
            'successfulValidations': self.successful_validations,
            'failedValidations': self.failed_validations,
            'disputesAsArbitrator': self.disputes_as_arbitrator,
            'disputesResolved': self.disputes_resolved,
            'lastActivityDate': self.last_activity_date,
            'points': self.points,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ReliabilityComponent":
        return cls(
            successful_validations=_number(data, 'successfulValidations'),
            failed_validations=_number(data, 'failedValidations'),
            disputes_as_arbitrator=_number(data, 'disputesAsArbitrator'),
            disputes_resolved=_number(data, 'disputesResolved'),
            last_activity_date=_number(data, 'lastActivityDate'),
            points=_number(data, 'points'),
        )


@dataclass
class ParticipationComponents:
    """The six score components for one address."""
    referrals: ReferralComponent = field(default_factory=ReferralComponent)
    publishing: PublishingComponent = field(default_factory=PublishingComponent)
    forum_activity: ForumComponent = field(default_factory=ForumComponent)
    marketplace_activity: MarketplaceComponent = field(default_factory=MarketplaceComponent)
    community_policing: PolicingComponent = field(default_factory=PolicingComponent)
    reliability: ReliabilityComponent = field(default_factory=ReliabilityComponent)

    def points(self) -> List[float]:
        """Points of every component, in scoring order."""
        return [
            self.referrals.points,
            self.publishing.points,
            self.forum_activity.points,
            self.marketplace_activity.points,
            self.community_policing.points,
            self.reliability.points,
        ]

    def to_dict(self) -> dict:
        return {
            'referrals': self.referrals.to_dict(),
            'publishing': self.publishing.to_dict(),
            'forumActivity': self.forum_activity.to_dict(),
            'marketplaceActivity': self.marketplace_activity.to_dict(),
            'communityPolicing': self.community_policing.to_dict(),
            'reliability': self.reliability.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParticipationComponents":
        """Parse components as-is, without rescoring or decay."""
        return cls(
            referrals=ReferralComponent.from_dict(_section(data, 'referrals')),
            publishing=PublishingComponent.from_dict(_section(data, 'publishing')),
            forum_activity=ForumComponent.from_dict(_section(data, 'forumActivity')),
            marketplace_activity=MarketplaceComponent.from_dict(
                _section(data, 'marketplaceActivity')
            ),
            community_policing=PolicingComponent.from_dict(
                _section(data, 'communityPolicing')
            ),
            reliability=ReliabilityComponent.from_dict(_section(data, 'reliability')),
        )


@dataclass
class ParticipationScore:
    """Participation score summary for one address."""
    address: str
    total_score: float = 0
    components: ParticipationComponents = field(default_factory=ParticipationComponents)
    qualified_as_validator: bool = False
    qualified_as_listing_node: bool = False
    last_calculated: int = 0            # epoch ms
    next_decay_time: int = 0            # epoch ms, informational

    def to_dict(self) -> dict:
        return {
            'address': self.address,
            'totalScore': self.total_score,
            'components': self.components.to_dict(),
            'qualifiedAsValidator': self.qualified_as_validator,
            'qualifiedAsListingNode': self.qualified_as_listing_node,
            'lastCalculated': self.last_calculated,
            'nextDecayTime': self.next_decay_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ParticipationScore":
        total = _number(data, 'totalScore')
        return cls(
            address=data.get('address', ''),
            total_score=total,
            components=ParticipationComponents.from_dict(_section(data, 'components')),
            qualified_as_validator=total >= VALIDATOR_MIN_SCORE,
            qualified_as_listing_node=total >= LISTING_NODE_MIN_SCORE,
            last_calculated=_number(data, 'lastCalculated'),
            next_decay_time=_number(data, 'nextDecayTime'),
        )


# ============================================================================
# COMPONENT SCORERS
# ============================================================================

def score_referrals(count: float) -> float:
    """1 point per referral, capped at 10. Referral credit never decays."""
    return min(count, REFERRAL_POINTS_MAX)


def score_publishing(
    listings_published: float,
    thresholds: List[Tuple[int, int]] = PUBLISHING_THRESHOLDS,
) -> int:
    """Points for the highest publishing threshold reached (0 below the first)."""
    points = 0
    for listings, threshold_points in thresholds:
        if listings_published >= listings:
            points = threshold_points
        else:
            break
    return points


def score_forum(
    points: float,
    last_activity: int,
    policy: DecayPolicy = DECAY_POLICIES["forum"],
    now: Optional[int] = None,
) -> float:
    return apply_decay(points, last_activity, policy, ACTIVITY_POINTS_MAX, 0, now)


def score_marketplace(
    points: float,
    last_transaction: int,
    policy: DecayPolicy = DECAY_POLICIES["marketplace"],
    now: Optional[int] = None,
) -> float:
    return apply_decay(points, last_transaction, policy, ACTIVITY_POINTS_MAX, 0, now)


def score_policing(
    points: float,
    last_report: int,
    policy: DecayPolicy = DECAY_POLICIES["communityPolicing"],
    now: Optional[int] = None,
) -> float:
    return apply_decay(points, last_report, policy, ACTIVITY_POINTS_MAX, 0, now)


def score_reliability(
    points: float,
    last_activity: int,
    policy: DecayPolicy = DECAY_POLICIES["reliability"],
    now: Optional[int] = None,
) -> float:
    """
    Reliability decays toward the -5 floor at the same rate whatever its
    sign, so an idle validator with +5 and a failing one with -1 both lose
    trust over time. Only the bounds are applied.
    """
    return apply_decay(
        points,
        last_activity,
        policy,
        RELIABILITY_POINTS_MAX,
        RELIABILITY_POINTS_MIN,
        now,
    )


# ============================================================================
# AGGREGATION
# ============================================================================

def aggregate(component_points: List[float]) -> Tuple[float, bool, bool]:
    """
    Combine component points into a total and the two qualification flags.

    Current weights top out at 34, so the clamp never binds today; it keeps
    the 0-100 range if components are ever reweighted.

    Returns:
        (total_score, qualified_as_validator, qualified_as_listing_node)
    """
    total = clamp(sum(component_points), SCORE_MIN, SCORE_MAX)
    return (
        total,
        total >= VALIDATOR_MIN_SCORE,
        total >= LISTING_NODE_MIN_SCORE,
    )


def calculate_score(
    address: str,
    data: Mapping[str, Any],
    policies: Optional[Mapping[str, DecayPolicy]] = None,
    now: Optional[int] = None,
) -> ParticipationScore:
    """
    Calculate a participation score from a ledger record.

    Args:
        address: Wallet address
        data: Ledger record (camelCase wire shape, every field optional)
        policies: Decay policy table (defaults to DECAY_POLICIES)
        now: Evaluation instant (epoch ms), defaults to the wall clock

    Returns:
        ParticipationScore with decayed component points
    """
    policies = policies or DECAY_POLICIES
    if now is None:
        now = now_ms()

    raw = ParticipationComponents.from_dict(data)

    components = ParticipationComponents(
        referrals=ReferralComponent(
            count=raw.referrals.count,
            points=score_referrals(raw.referrals.count),
        ),
        publishing=PublishingComponent(
            listings_published=raw.publishing.listings_published,
            points=score_publishing(raw.publishing.listings_published),
        ),
        forum_activity=ForumComponent(
            questions_answered=raw.forum_activity.questions_answered,
            helpful_votes=raw.forum_activity.helpful_votes,
            last_activity_date=raw.forum_activity.last_activity_date,
            points=score_forum(
                raw.forum_activity.points,
                raw.forum_activity.last_activity_date,
                policies["forum"],
                now,
            ),
        ),
        marketplace_activity=MarketplaceComponent(
            buy_transactions=raw.marketplace_activity.buy_transactions,
            sell_transactions=raw.marketplace_activity.sell_transactions,
            last_transaction_date=raw.marketplace_activity.last_transaction_date,
            points=score_marketplace(
                raw.marketplace_activity.points,
                raw.marketplace_activity.last_transaction_date,
                policies["marketplace"],
                now,
            ),
        ),
        community_policing=PolicingComponent(
            reports_submitted=raw.community_policing.reports_submitted,
            reports_verified=raw.community_policing.reports_verified,
            last_report_date=raw.community_policing.last_report_date,
            points=score_policing(
                raw.community_policing.points,
                raw.community_policing.last_report_date,
                policies["communityPolicing"],
                now,
            ),
        ),
        reliability=ReliabilityComponent(
            successful_validations=raw.reliability.successful_validations,
            failed_validations=raw.reliability.failed_validations,
            disputes_as_arbitrator=raw.reliability.disputes_as_arbitrator,
            disputes_resolved=raw.reliability.disputes_resolved,
            last_activity_date=raw.reliability.last_activity_date,
            points=score_reliability(
                raw.reliability.points,
                raw.reliability.last_activity_date,
                policies["reliability"],
                now,
            ),
        ),
    )

    total, is_validator, is_listing_node = aggregate(components.points())

    return ParticipationScore(
        address=address,
        total_score=total,
        components=components,
        qualified_as_validator=is_validator,
        qualified_as_listing_node=is_listing_node,
        last_calculated=now,
        next_decay_time=_next_decay_time(raw, policies, now),
    )


def _next_decay_time(
    raw: ParticipationComponents,
    policies: Mapping[str, DecayPolicy],
    now: int,
) -> int:
    """Earliest upcoming decay step across decaying components."""
    candidates = [
        next_decay_at(
            raw.forum_activity.points,
            raw.forum_activity.last_activity_date,
            policies["forum"],
            ACTIVITY_POINTS_MAX,
            0,
            now,
        ),
        next_decay_at(
            raw.marketplace_activity.points,
            raw.marketplace_activity.last_transaction_date,
            policies["marketplace"],
            ACTIVITY_POINTS_MAX,
            0,
            now,
        ),
        next_decay_at(
            raw.community_policing.points,
            raw.community_policing.last_report_date,
            policies["communityPolicing"],
            ACTIVITY_POINTS_MAX,
            0,
            now,
        ),
        next_decay_at(
            raw.reliability.points,
            raw.reliability.last_activity_date,
            policies["reliability"],
            RELIABILITY_POINTS_MAX,
            RELIABILITY_POINTS_MIN,
            now,
        ),
    ]
    upcoming = [c for c in candidates if c is not None]
    if upcoming:
        return min(upcoming)
    return now + NEXT_DECAY_FALLBACK_MS


def default_score(address: str, now: Optional[int] = None) -> ParticipationScore:
    """
    Score for an address with no ledger record, or when the ledger could
    not be read: every counter and point zero, no qualification.
    """
    if now is None:
        now = now_ms()
    return ParticipationScore(
        address=address,
        last_calculated=now,
        next_decay_time=now + NEXT_DECAY_FALLBACK_MS,
    )
