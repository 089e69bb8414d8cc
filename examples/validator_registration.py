"""
bazaarscore/examples/validator_registration.py

Example of a marketplace node gating role registration on participation.

This shows how a node uses bazaarscore to:
1. Read a user's participation score
2. Report activity as it happens
3. Decide whether the user may run a listing node or a validator

Usage:
    BAZAARSCORE_LEDGER_ENDPOINT=http://ledger:3001/api/participation \
        python examples/validator_registration.py 0xabc...
"""

import logging
import sys

import trio

from bazaarscore import (
    LedgerError,
    ParticipationConfig,
    ParticipationService,
    StaticKYCProvider,
    StaticStakingProvider,
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [NODE] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


class RegistrationDesk:
    """
    Role registration for a marketplace node.

    Listing nodes only need participation. Validators additionally need
    top-tier KYC and a stake, which a real deployment would read from its
    identity service and staking contract.
    """

    def __init__(self, service: ParticipationService):
        self.service = service

    async def register_listing_node(self, address: str) -> bool:
        result = await self.service.check_listing_node_qualification(address)
        if not result.qualified:
            logger.info(
                f"{address} needs {result.min_required} points for a listing node "
                f"(has {result.score})"
            )
            return False
        logger.info(f"{address} registered as listing node")
        return True

    async def register_validator(self, address: str) -> bool:
        # Validator registration must not trust a cached or default score
        self.service.invalidate(address)
        result = await self.service.check_validator_qualification(address)
        if result.errors:
            logger.warning(f"Lookup problems for {address}: {'; '.join(result.errors)}")
        if not result.qualified:
            req = result.requirements
            logger.info(
                f"{address} not eligible as validator: score {req.current_score}/{req.min_score}, "
                f"KYC {'ok' if req.has_kyc else 'missing'}, "
                f"stake {req.staking_amount}/{req.required_staking}"
            )
            return False
        logger.info(f"{address} registered as validator")
        return True


async def main(address: str):
    service = ParticipationService(
        ParticipationConfig.from_env(),
        staking=StaticStakingProvider({address: "1500000"}),
        kyc=StaticKYCProvider({address: True}),
    )
    await service.start()

    try:
        score = await service.get_score(address)
        logger.info(f"Current score for {address}: {score.total_score}")

        try:
            score = await service.track_marketplace_transaction(address, "sell", "tx-example")
            logger.info(f"Score after sale: {score.total_score}")
        except LedgerError as e:
            logger.error(f"Could not report sale: {e}")

        desk = RegistrationDesk(service)
        await desk.register_listing_node(address)
        await desk.register_validator(address)
    finally:
        await service.stop()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: validator_registration.py ADDRESS")
        sys.exit(1)
    trio.run(main, sys.argv[1])
