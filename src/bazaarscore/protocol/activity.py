"""
bazaarscore/protocol/activity.py

Activity events reported to the participation ledger.

One event class per score component. Each class fixes the component it
belongs to and the event types it accepts, so a reporter can never post a
marketplace "buy" against the forum component.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Type


class ActivityType:
    """Event type tags understood by the ledger."""
    NEW_REFERRAL = "new_referral"
    LISTING_PUBLISHED = "listing_published"
    ANSWER = "answer"
    HELPFUL_VOTE = "helpful_vote"
    BUY = "buy"
    SELL = "sell"
    REPORT = "report"
    VALIDATION_SUCCESS = "validation_success"
    VALIDATION_FAILURE = "validation_failure"
    DISPUTE_RESOLVED = "dispute_resolved"
    DISPUTE_FAILED = "dispute_failed"


@dataclass
class ActivityEvent:
    """Base class for component activity events."""
    COMPONENT: ClassVar[str] = ""
    TYPES: ClassVar[FrozenSet[str]] = frozenset()

    type: str

    def __post_init__(self):
        if self.type not in self.TYPES:
            raise ValueError(
                f"Invalid {self.COMPONENT} activity type: {self.type!r}. "
                f"Valid options: {', '.join(sorted(self.TYPES))}"
            )

    @property
    def component(self) -> str:
        return self.COMPONENT

    def to_dict(self) -> Dict[str, Any]:
        """Wire form of the event (the ledger's `activity` object)."""
        return {'type': self.type}


@dataclass
class ReferralEvent(ActivityEvent):
    """A user referred a new member."""
    COMPONENT: ClassVar[str] = "referrals"
    TYPES: ClassVar[FrozenSet[str]] = frozenset({ActivityType.NEW_REFERRAL})

    type: str = ActivityType.NEW_REFERRAL
    referred: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'referred': self.referred}


@dataclass
class PublishingEvent(ActivityEvent):
    """A listing was published on someone else's behalf."""
    COMPONENT: ClassVar[str] = "publishing"
    TYPES: ClassVar[FrozenSet[str]] = frozenset({ActivityType.LISTING_PUBLISHED})

    type: str = ActivityType.LISTING_PUBLISHED
    listing_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'listingId': self.listing_id}


@dataclass
class ForumEvent(ActivityEvent):
    COMPONENT: ClassVar[str] = "forumActivity"
    TYPES: ClassVar[FrozenSet[str]] = frozenset({
        ActivityType.ANSWER,
        ActivityType.HELPFUL_VOTE,
    })

    type: str = ActivityType.ANSWER
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {**self.metadata, 'type': self.type}


@dataclass
class MarketplaceEvent(ActivityEvent):
    COMPONENT: ClassVar[str] = "marketplaceActivity"
    TYPES: ClassVar[FrozenSet[str]] = frozenset({ActivityType.BUY, ActivityType.SELL})

    type: str = ActivityType.BUY
    transaction_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'transactionId': self.transaction_id}


@dataclass
class PolicingEvent(ActivityEvent):
    """A community report, with whether moderators verified it."""
    COMPONENT: ClassVar[str] = "communityPolicing"
    TYPES: ClassVar[FrozenSet[str]] = frozenset({ActivityType.REPORT})

    type: str = ActivityType.REPORT
    report_id: str = ""
    verified: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'reportId': self.report_id, 'verified': self.verified}


@dataclass
class ReliabilityEvent(ActivityEvent):
    """Outcome of a validation or of an arbitrated dispute."""
    COMPONENT: ClassVar[str] = "reliability"
    TYPES: ClassVar[FrozenSet[str]] = frozenset({
        ActivityType.VALIDATION_SUCCESS,
        ActivityType.VALIDATION_FAILURE,
        ActivityType.DISPUTE_RESOLVED,
        ActivityType.DISPUTE_FAILED,
    })

    type: str = ActivityType.VALIDATION_SUCCESS
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {**self.metadata, 'type': self.type}


EVENT_CLASSES: Dict[str, Type[ActivityEvent]] = {
    cls.COMPONENT: cls
    for cls in (
        ReferralEvent,
        PublishingEvent,
        ForumEvent,
        MarketplaceEvent,
        PolicingEvent,
        ReliabilityEvent,
    )
}


def event_from_dict(component: str, data: Dict[str, Any]) -> ActivityEvent:
    """
    Parse a wire activity payload for a component.

    Raises:
        ValueError: Unknown component or invalid event type
    """
    cls = EVENT_CLASSES.get(component)
    if cls is None:
        raise ValueError(f"Unknown component: {component!r}")
    if not isinstance(data, dict):
        raise ValueError(f"Invalid {component} activity payload: {data!r}")

    event_type = data.get('type', '')
    if cls is ReferralEvent:
        return ReferralEvent(type=event_type, referred=data.get('referred', ''))
    if cls is PublishingEvent:
        return PublishingEvent(type=event_type, listing_id=data.get('listingId', ''))
    if cls is MarketplaceEvent:
        return MarketplaceEvent(type=event_type, transaction_id=data.get('transactionId', ''))
    if cls is PolicingEvent:
        return PolicingEvent(
            type=event_type,
            report_id=data.get('reportId', ''),
            verified=bool(data.get('verified', False)),
        )

    metadata = {k: v for k, v in data.items() if k != 'type'}
    return cls(type=event_type, metadata=metadata)


def build_event(
    component: str,
    event_type: str,
    ref: str = "",
    verified: bool = False,
    metadata: Optional[Dict[str, Any]] = None,
) -> ActivityEvent:
    """
    Build an event from loosely typed arguments (CLI and convenience helpers).

    ``ref`` is the referred address, listing ID, transaction ID or report ID,
    depending on the component.
    """
    if component == ReferralEvent.COMPONENT:
        return ReferralEvent(type=event_type, referred=ref)
    if component == PublishingEvent.COMPONENT:
        return PublishingEvent(type=event_type, listing_id=ref)
    if component == MarketplaceEvent.COMPONENT:
        return MarketplaceEvent(type=event_type, transaction_id=ref)
    if component == PolicingEvent.COMPONENT:
        return PolicingEvent(type=event_type, report_id=ref, verified=verified)
    if component == ForumEvent.COMPONENT:
        return ForumEvent(type=event_type, metadata=dict(metadata or {}))
    if component == ReliabilityEvent.COMPONENT:
        return ReliabilityEvent(type=event_type, metadata=dict(metadata or {}))
    raise ValueError(f"Unknown component: {component!r}")
