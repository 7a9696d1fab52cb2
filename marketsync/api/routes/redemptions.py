"""Redemption Routes — hand a buyer the live authorization tuple.

Invariants:
    - 200 only after live ownerOf and nonce checks passed
    - Every refusal is a 404 carrying a distinct reason
"""

import logging

from fastapi import APIRouter, Depends

from marketsync.api.dependencies import get_marketplace_config, get_redemption_coordinator
from marketsync.config import MarketplaceConfig
from marketsync.schemas.redemption import RedemptionRequest, RedemptionResponse
from marketsync.services.redemption import RedemptionCoordinator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/redemptions", tags=["redemptions"])


@router.post("", response_model=RedemptionResponse)
async def redeem(
    body: RedemptionRequest,
    coordinator: RedemptionCoordinator = Depends(get_redemption_coordinator),
    config: MarketplaceConfig = Depends(get_marketplace_config),
):
    redemption = await coordinator.get_redemption(
        body.contract_address or config.nft_contract,
        body.token_id,
        body.buyer_address,
        seller=body.seller_address,
    )
    return RedemptionResponse(
        contract_address=redemption.contract_address,
        token_id=str(redemption.token_id),
        seller_address=redemption.seller_address,
        price=str(redemption.price),
        deadline=redemption.deadline,
        nonce=redemption.nonce,
        signature=redemption.signature,
        signer_address=redemption.signer_address,
    )
