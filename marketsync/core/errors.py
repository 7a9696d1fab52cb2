"""Error Hierarchy — typed, categorized exceptions for all marketsync failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Validation errors (400-level) are never retried and never partially persisted
    - Staleness surfaces as 404 with a distinct reason, not as a fault
    - Ledger/database errors (500-level) mean "try again later"
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with MarketSyncError base: one FastAPI handler catches all
    - Ledger errors keep the provider message so the executor can re-raise them
      unmodified after the retry ceiling
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    STALENESS = "staleness"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    contract_address: str | None = None
    token_id: int | None = None
    seller_address: str | None = None
    stream: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class MarketSyncError(Exception):
    """Base exception for all marketsync errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "contract_address": self.context.contract_address,
                    "token_id": (
                        str(self.context.token_id)
                        if self.context.token_id is not None else None
                    ),
                    "seller_address": self.context.seller_address,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Validation Errors (400-level) ──────────────────────────────

class MalformedAuthorizationError(MarketSyncError):
    """Authorization payload cannot be interpreted as a listing."""
    def __init__(
        self, message: str, code: str = "MALFORMED_AUTHORIZATION",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class NotOwnerError(MarketSyncError):
    """Seller does not own the asset according to the ownership store."""
    def __init__(
        self, seller: str, owner: str | None, context: ErrorContext | None = None,
    ):
        detail = f"current owner is {owner}" if owner else "asset is not indexed"
        super().__init__(
            f"Seller {seller} does not own this asset ({detail})",
            "NOT_OWNER", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 403,
        )
        self.seller = seller
        self.owner = owner


class InvalidSignatureError(MarketSyncError):
    """Recovered signer matches neither the seller nor the declared delegate."""
    def __init__(self, recovered: str, context: ErrorContext | None = None):
        super().__init__(
            f"Signature was produced by {recovered}, which is not authorized for this seller",
            "INVALID_SIGNATURE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 403,
        )
        self.recovered = recovered


class StaleNonceError(MarketSyncError):
    """Authorization nonce differs from the seller's live on-chain nonce."""
    def __init__(
        self, signed_nonce: int, live_nonce: int, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Authorization nonce {signed_nonce} does not match on-chain nonce {live_nonce}",
            "NONCE_MISMATCH", ErrorCategory.STALENESS,
            ErrorSeverity.ERROR, context, 409,
        )
        self.signed_nonce = signed_nonce
        self.live_nonce = live_nonce


class InvalidAddressError(MarketSyncError):
    """Query or path parameter is not a valid ledger address."""
    def __init__(self, value: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid address: {value!r}",
            "INVALID_ADDRESS", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


# ─── Staleness / Not Found (404) ─────────────────────────────────

class ResourceNotFoundError(MarketSyncError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class RedemptionUnavailableError(MarketSyncError):
    """No live authorization can be served for the asset."""
    def __init__(self, reason: str, message: str, context: ErrorContext | None = None):
        category = (
            ErrorCategory.RESOURCE_NOT_FOUND if reason == "not_found"
            else ErrorCategory.STALENESS
        )
        super().__init__(
            message, "LISTING_NOT_FOUND", category,
            ErrorSeverity.INFO, context, 404,
        )
        self.reason = reason

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["reason"] = self.reason
        return response


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(MarketSyncError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class LedgerError(MarketSyncError):
    """Ledger RPC call failed (non-retryable or retries exhausted)."""
    def __init__(
        self,
        message: str,
        method: str,
        code: str = "LEDGER_UNAVAILABLE",
        category: ErrorCategory = ErrorCategory.EXTERNAL_API,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Ledger call {method} failed: {message}",
            code, category, ErrorSeverity.CRITICAL, context, 503,
        )
        self.method = method


class LedgerRateLimitError(LedgerError):
    """Provider signalled request-limit throttling."""
    def __init__(
        self,
        message: str,
        method: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(message, method, "LEDGER_RATE_LIMITED", context=ctx)


class LedgerTimeoutError(LedgerError):
    """Per-call RPC timeout elapsed."""
    def __init__(self, method: str, context: ErrorContext | None = None):
        super().__init__(
            "request timed out", method, "LEDGER_TIMEOUT",
            ErrorCategory.TIMEOUT, context,
        )


class SyncInProgressError(MarketSyncError):
    """Another synchronization pass holds the sync lock."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "A synchronization pass is already running",
            "SYNC_IN_PROGRESS", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class EventIntegrityError(MarketSyncError):
    """A single ledger event cannot be applied (undecodable or unresolvable)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "EVENT_INTEGRITY", ErrorCategory.INTERNAL,
            ErrorSeverity.WARNING, context, 500,
        )
