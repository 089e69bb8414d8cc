"""
bazaarscore/collaborators.py

External lookups that validator qualification depends on.

Staking balances and KYC status come from systems this package does not
own. Both interfaces may be left unimplemented: the null providers report a
zero stake and no KYC rather than raising.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict

logger = logging.getLogger("bazaarscore.collaborators")


# ============================================================================
# INTERFACES
# ============================================================================

class StakingProvider(ABC):
    """Source of staked balances."""

    @abstractmethod
    async def get_staked_balance(self, address: str) -> str:
        """Staked amount for an address as a decimal string."""
        pass


class KYCProvider(ABC):
    """Source of identity verification status."""

    @abstractmethod
    async def get_kyc_status(self, address: str) -> bool:
        """True if the address holds top-tier verification."""
        pass


# ============================================================================
# IMPLEMENTATIONS
# ============================================================================

class NullStakingProvider(StakingProvider):
    """Staking lookup for deployments without a staking contract."""

    async def get_staked_balance(self, address: str) -> str:
        return "0"


class NullKYCProvider(KYCProvider):
    """KYC lookup for deployments without a KYC service."""

    async def get_kyc_status(self, address: str) -> bool:
        return False


class StaticStakingProvider(StakingProvider):
    """In-memory staking balances (tests, local development)."""

    def __init__(self, balances: Dict[str, str] = None):
        self._balances: Dict[str, str] = dict(balances or {})

    def set_balance(self, address: str, amount: str) -> None:
        self._balances[address] = amount

    async def get_staked_balance(self, address: str) -> str:
        return self._balances.get(address, "0")


class StaticKYCProvider(KYCProvider):
    """In-memory KYC status (tests, local development)."""

    def __init__(self, verified: Dict[str, bool] = None):
        self._verified: Dict[str, bool] = dict(verified or {})

    def set_status(self, address: str, verified: bool) -> None:
        self._verified[address] = verified

    async def get_kyc_status(self, address: str) -> bool:
        return self._verified.get(address, False)
