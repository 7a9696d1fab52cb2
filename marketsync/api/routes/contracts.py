"""Contract Info — addresses and EIP-712 domain clients need to sign listings."""

from fastapi import APIRouter, Depends

from marketsync.api.dependencies import get_marketplace_config
from marketsync.config import MarketplaceConfig
from marketsync.core.typed_data import (
    EIP712_DOMAIN_TYPE, LISTING_AUTHORIZATION_TYPE, PRIMARY_TYPE, build_domain,
)

router = APIRouter(prefix="/api/v1/contracts", tags=["contracts"])


@router.get("")
async def contract_info(config: MarketplaceConfig = Depends(get_marketplace_config)):
    return {
        "chainId": config.chain_id,
        "nftContract": config.nft_contract,
        "marketplaceContract": config.marketplace_contract,
        "domain": build_domain(config),
        "primaryType": PRIMARY_TYPE,
        "types": {
            "EIP712Domain": EIP712_DOMAIN_TYPE,
            PRIMARY_TYPE: LISTING_AUTHORIZATION_TYPE,
        },
    }
