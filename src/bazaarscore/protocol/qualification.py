"""
bazaarscore/protocol/qualification.py

Role qualification checks on top of a computed participation score.

Listing node:  score >= 25
Validator:     score >= 50 AND top-tier KYC AND staked >= 1,000,000
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from ..config import (
    LISTING_NODE_MIN_SCORE,
    VALIDATOR_MIN_SCORE,
    VALIDATOR_REQUIRED_STAKE,
)
from .participation import ParticipationScore

logger = logging.getLogger(__name__)


@dataclass
class ListingNodeQualification:
    qualified: bool
    score: float
    min_required: int = LISTING_NODE_MIN_SCORE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'qualified': self.qualified,
            'score': self.score,
            'minRequired': self.min_required,
        }


@dataclass
class ValidatorRequirements:
    """Each validator requirement next to the value observed for it."""
    min_score: int
    current_score: float
    has_kyc: bool
    staking_amount: str
    required_staking: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'minScore': self.min_score,
            'currentScore': self.current_score,
            'hasKYC': self.has_kyc,
            'stakingAmount': self.staking_amount,
            'requiredStaking': self.required_staking,
        }


@dataclass
class ValidatorQualification:
    qualified: bool
    score: float
    requirements: ValidatorRequirements
    # Causes of failed external lookups, for diagnostics
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'qualified': self.qualified,
            'score': self.score,
            'requirements': self.requirements.to_dict(),
            'errors': list(self.errors),
        }


def parse_stake(amount: Any) -> Decimal:
    """Parse a staked amount, treating anything unparsable as zero."""
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        logger.warning(f"Unparsable staking amount: {amount!r}")
        return Decimal(0)
    if not value.is_finite():
        return Decimal(0)
    return value


def evaluate_listing_node(score: ParticipationScore) -> ListingNodeQualification:
    return ListingNodeQualification(
        qualified=score.qualified_as_listing_node,
        score=score.total_score,
    )


def evaluate_validator(
    score: ParticipationScore,
    has_kyc: bool,
    staking_amount: str,
    errors: Optional[List[str]] = None,
) -> ValidatorQualification:
    """
    Combine the score with externally supplied KYC and staking results.

    Args:
        score: Computed participation score
        has_kyc: KYC lookup result (False if the lookup failed)
        staking_amount: Staked amount as a decimal string ("0" if unknown)
        errors: Failed lookup causes to carry into the result
    """
    stake_met = parse_stake(staking_amount) >= VALIDATOR_REQUIRED_STAKE
    return ValidatorQualification(
        qualified=score.qualified_as_validator and has_kyc and stake_met,
        score=score.total_score,
        requirements=ValidatorRequirements(
            min_score=VALIDATOR_MIN_SCORE,
            current_score=score.total_score,
            has_kyc=has_kyc,
            staking_amount=staking_amount,
            required_staking=str(VALIDATOR_REQUIRED_STAKE),
        ),
        errors=list(errors or []),
    )
