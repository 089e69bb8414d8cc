"""
bazaarscore/protocol/leaderboard.py

Ranking of participation scores across addresses.

Rankings come from the ledger's aggregate view rather than the local score
cache, so every address is compared as of the same instant.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from ..config import LISTING_NODE_MIN_SCORE, VALIDATOR_MIN_SCORE
from .decay import is_finite_number

logger = logging.getLogger(__name__)


@dataclass
class LeaderboardEntry:
    rank: int
    address: str
    score: float
    is_validator: bool
    is_listing_node: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rank': self.rank,
            'address': self.address,
            'score': self.score,
            'isValidator': self.is_validator,
            'isListingNode': self.is_listing_node,
        }


def _entry_score(entry: Dict[str, Any]) -> float:
    value = entry.get('score', 0)
    if not is_finite_number(value):
        return 0
    return value


def rank_entries(raw_entries: Iterable[Any], limit: int) -> List[LeaderboardEntry]:
    """
    Rank raw ledger entries by score, highest first.

    Ties keep the ledger's order. Entries that are not objects are skipped;
    missing addresses and scores default to "" and 0.

    Args:
        raw_entries: Ledger entries of the form {address, score}
        limit: Maximum number of entries to return

    Returns:
        Ranked entries, rank 1 first
    """
    entries = []
    for raw in raw_entries:
        if not isinstance(raw, dict):
            logger.debug(f"Skipping malformed leaderboard entry: {raw!r}")
            continue
        address = raw.get('address')
        entries.append((address if isinstance(address, str) else "", _entry_score(raw)))

    entries.sort(key=lambda e: e[1], reverse=True)

    return [
        LeaderboardEntry(
            rank=index + 1,
            address=address,
            score=score,
            is_validator=score >= VALIDATOR_MIN_SCORE,
            is_listing_node=score >= LISTING_NODE_MIN_SCORE,
        )
        for index, (address, score) in enumerate(entries[:limit])
    ]
