"""
bazaarscore/service.py

Participation service: the read/write facade over the ledger.

Reads go through the score cache. On a miss the raw record is fetched from
the ledger, scored and cached. Writes post the activity event to the ledger
and evict the address's cache entry so the next read recomputes.

Usage:
    service = ParticipationService(ParticipationConfig.from_env())
    await service.start()

    score = await service.get_score("0xabc...")
    print(score.total_score, score.qualified_as_listing_node)

    await service.track_marketplace_transaction("0xabc...", "buy", "tx-42")

    result = await service.check_validator_qualification("0xabc...")
    await service.stop()
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .cache import ScoreCache
from .collaborators import KYCProvider, NullKYCProvider, NullStakingProvider, StakingProvider
from .config import DEFAULT_LEADERBOARD_LIMIT, ParticipationConfig
from .ledger.client import LedgerClient
from .metrics import ScoreMetrics
from .protocol.activity import (
    ActivityEvent,
    ForumEvent,
    MarketplaceEvent,
    PolicingEvent,
    PublishingEvent,
    ReferralEvent,
    ReliabilityEvent,
)
from .protocol.leaderboard import LeaderboardEntry, rank_entries
from .protocol.participation import ParticipationScore, calculate_score, default_score
from .protocol.qualification import (
    ListingNodeQualification,
    ValidatorQualification,
    evaluate_listing_node,
    evaluate_validator,
)

logger = logging.getLogger("bazaarscore.service")


class ParticipationService:
    """
    Participation scoring for one ledger.

    The service holds no global state: the cache, ledger client and
    collaborators are owned by the instance and may be injected.
    """

    def __init__(
        self,
        config: Optional[ParticipationConfig] = None,
        ledger: Optional[LedgerClient] = None,
        cache: Optional[ScoreCache] = None,
        staking: Optional[StakingProvider] = None,
        kyc: Optional[KYCProvider] = None,
        metrics: Optional[ScoreMetrics] = None,
    ):
        """
        Initialize the participation service.

        Args:
            config: Service configuration (defaults to ParticipationConfig())
            ledger: Ledger client (built from config if not given)
            cache: Score cache (built from config if not given)
            staking: Staking balance source (null provider if not given)
            kyc: KYC status source (null provider if not given)
            metrics: Metrics collector (created if not given)
        """
        self.config = config or ParticipationConfig()
        self.cache = cache or ScoreCache(ttl_ms=self.config.cache_ttl_ms)
        self.metrics = metrics or ScoreMetrics(self.cache)
        self.ledger = ledger or LedgerClient(
            endpoint=self.config.ledger_endpoint,
            timeout=self.config.request_timeout,
            metrics=self.metrics,
        )
        self.staking = staking or NullStakingProvider()
        self.kyc = kyc or NullKYCProvider()

        self._started = False

    async def start(self) -> None:
        """Start the service."""
        if self._started:
            return
        self._started = True
        logger.info(f"Participation service started (ledger: {self.ledger.endpoint})")

    async def stop(self) -> None:
        """Stop the service and release resources."""
        if not self._started:
            return
        await self.cleanup()
        self._started = False
        logger.info("Participation service stopped")

    async def cleanup(self) -> None:
        """Clear cached scores and close the ledger session."""
        self.cache.clear()
        self.ledger.close()

    # ========================================================================
    # SCORES
    # ========================================================================

    async def get_score(self, address: str) -> ParticipationScore:
        """
        Get the participation score for an address.

        Served from cache when fresh. If the ledger cannot be read the
        default zero score is returned (and not cached), so callers that
        need certainty, such as validator registration, should re-query.
        """
        _require_address(address)

        cached = self.cache.get(address)
        if cached is not None:
            self.metrics.record_cache_hit()
            logger.debug(f"Score cache hit: {address}")
            return cached

        self.metrics.record_cache_miss()
        generation = self.cache.generation(address)

        record = await self.ledger.fetch_record(address)
        if record is None:
            return default_score(address)

        try:
            score = calculate_score(address, record, self.config.decay_policies)
        except (ValueError, ArithmeticError) as e:
            logger.warning(f"Failed to calculate score for {address}: {e}")
            return default_score(address)

        self.cache.put(address, score, generation)
        return score

    def invalidate(self, address: str) -> None:
        """Force the next read for an address to go to the ledger."""
        self.cache.evict(address)

    # ========================================================================
    # ACTIVITY REPORTING
    # ========================================================================

    async def update_activity(
        self,
        address: str,
        event: ActivityEvent,
        timestamp: Optional[int] = None,
    ) -> ParticipationScore:
        """
        Report an activity event and return the recalculated score.

        The returned score is calculated from the ledger's updated snapshot.
        The cache entry is evicted, not replaced.

        Raises:
            ValueError: Empty address or not an ActivityEvent
            LedgerError: The ledger did not accept the event
        """
        _require_address(address)
        if not isinstance(event, ActivityEvent):
            raise ValueError(f"Expected an ActivityEvent, got {type(event).__name__}")

        try:
            record = await self.ledger.post_update(address, event, timestamp)
        finally:
            # Evict even on failure: a timed-out write may still have landed
            self.cache.evict(address)

        self.metrics.record_activity(event.component)
        logger.info(f"Activity reported: {address} {event.component}/{event.type}")

        return calculate_score(address, record, self.config.decay_policies)

    async def track_referral(self, referrer: str, referred: str) -> ParticipationScore:
        return await self.update_activity(referrer, ReferralEvent(referred=referred))

    async def track_listing_published(
        self,
        publisher: str,
        listing_id: str,
    ) -> ParticipationScore:
        return await self.update_activity(publisher, PublishingEvent(listing_id=listing_id))

    async def track_forum_activity(
        self,
        user: str,
        activity_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ParticipationScore:
        """Report a forum answer or helpful vote."""
        return await self.update_activity(
            user,
            ForumEvent(type=activity_type, metadata=dict(metadata or {})),
        )

    async def track_marketplace_transaction(
        self,
        user: str,
        transaction_type: str,
        transaction_id: str,
    ) -> ParticipationScore:
        """Report a marketplace buy or sell."""
        return await self.update_activity(
            user,
            MarketplaceEvent(type=transaction_type, transaction_id=transaction_id),
        )

    async def track_community_policing(
        self,
        reporter: str,
        report_id: str,
        verified: bool,
    ) -> ParticipationScore:
        return await self.update_activity(
            reporter,
            PolicingEvent(report_id=report_id, verified=verified),
        )

    async def update_reliability(
        self,
        user: str,
        action: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ParticipationScore:
        """Report a validation or dispute outcome."""
        return await self.update_activity(
            user,
            ReliabilityEvent(type=action, metadata=dict(metadata or {})),
        )

    # ========================================================================
    # QUALIFICATION
    # ========================================================================

    async def check_listing_node_qualification(self, address: str) -> ListingNodeQualification:
        score = await self.get_score(address)
        return evaluate_listing_node(score)

    async def check_validator_qualification(self, address: str) -> ValidatorQualification:
        """
        Check whether an address may run a validator.

        Failed staking or KYC lookups count as unmet requirements; their
        causes are listed in the result's ``errors``.
        """
        score = await self.get_score(address)

        errors: List[str] = []
        staking_amount, staking_error = await self._lookup_staking(address)
        if staking_error:
            errors.append(staking_error)
        has_kyc, kyc_error = await self._lookup_kyc(address)
        if kyc_error:
            errors.append(kyc_error)

        return evaluate_validator(score, has_kyc, staking_amount, errors)

    async def get_staking_amount(self, address: str) -> str:
        """Staked amount as a decimal string; "0" if unknown."""
        amount, _ = await self._lookup_staking(address)
        return amount

    async def check_kyc_status(self, address: str) -> bool:
        """KYC status; False if unknown."""
        verified, _ = await self._lookup_kyc(address)
        return verified

    async def _lookup_staking(self, address: str) -> Tuple[str, Optional[str]]:
        try:
            balance = await self.staking.get_staked_balance(address)
        except Exception as e:
            logger.warning(f"Failed to get staking amount for {address}: {e}")
            return "0", f"staking: {e}"
        return str(balance), None

    async def _lookup_kyc(self, address: str) -> Tuple[bool, Optional[str]]:
        try:
            verified = await self.kyc.get_kyc_status(address)
        except Exception as e:
            logger.warning(f"Failed to check KYC status for {address}: {e}")
            return False, f"kyc: {e}"
        return bool(verified), None

    # ========================================================================
    # LEADERBOARD
    # ========================================================================

    async def get_leaderboard(
        self,
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
    ) -> List[LeaderboardEntry]:
        """
        Top addresses by participation score.

        Raises:
            ValueError: Negative limit
        """
        if limit < 0:
            raise ValueError(f"limit cannot be negative, got {limit}")
        if limit == 0:
            return []

        raw_entries = await self.ledger.fetch_leaderboard(limit)
        return rank_entries(raw_entries, limit)

    # ========================================================================
    # STATUS
    # ========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Get service statistics."""
        return {
            "started": self._started,
            "cache": self.cache.stats(),
            "ledger": self.ledger.get_stats(),
            "metrics": self.metrics.get_stats(),
        }

    def __repr__(self) -> str:
        return f"ParticipationService({self.ledger.endpoint}, cached={len(self.cache)})"


def _require_address(address: str) -> None:
    if not isinstance(address, str) or not address.strip():
        raise ValueError("Address required")
