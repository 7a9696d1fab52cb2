"""EIP-712 Signature Verifier — recovers the signer of structured-data authorizations.

Invariants:
    - recover() only verifies; this service never holds a signing key
    - Unparseable signatures / payloads → MalformedAuthorizationError (400), never 500
    - Recovered addresses are checksummed so they compare with normalized input
"""

import logging

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import decode_hex

from marketsync.core.domain_types import Address, normalize_address
from marketsync.core.errors import MalformedAuthorizationError

logger = logging.getLogger(__name__)

_SIGNATURE_BYTES = 65


class Eip712Verifier:
    """Signature capability backed by eth-account."""

    def recover(self, typed_data: dict, signature: str) -> Address:
        try:
            raw = decode_hex(signature)
        except ValueError:
            raise MalformedAuthorizationError("signature is not valid hex")
        if len(raw) != _SIGNATURE_BYTES:
            raise MalformedAuthorizationError(
                f"signature must be {_SIGNATURE_BYTES} bytes, got {len(raw)}",
            )
        try:
            signable = encode_typed_data(full_message=typed_data)
            recovered = Account.recover_message(signable, signature=raw)
        except Exception as e:
            logger.warning(f"EIP-712 recovery failed: {e}")
            raise MalformedAuthorizationError(
                "signature cannot be recovered for this authorization",
            )
        return normalize_address(recovered)
