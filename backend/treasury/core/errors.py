"""Error Hierarchy - typed, categorized exceptions for all treasury failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors are raised BEFORE any state mutation
    - Persistence errors leave the engine's in-memory state untouched
    - to_report() produces a JSON-safe envelope for the notification layer

Design Decisions:
    - Single hierarchy with TreasuryError base: callers catch one type per cycle
    - ErrorContext as dataclass: rich observability without coupling to logging
    - UnknownModuleError instead of ModuleNotFoundError: the builtin name stays usable
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PERSISTENCE = "persistence"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    operation: str | None = None
    module_id: str | None = None
    amount: str | None = None
    debug_info: dict[str, Any] | None = None


class TreasuryError(Exception):
    """Base exception for all treasury errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING, ErrorSeverity.ERROR)

    def to_report(self) -> dict:
        """Convert to a structured error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "operation": self.context.operation,
                    "module_id": self.context.module_id,
                    "amount": self.context.amount,
                    "debug_info": self.context.debug_info,
                },
            }
        }


# ─── Domain Errors ──────────────────────────────────────────────

class InvalidAmountError(TreasuryError):
    """Revenue amount is negative, non-finite or not a number."""
    def __init__(self, amount: object, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid amount {amount!r}: {reason}",
            "INVALID_AMOUNT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.amount = amount
        self.reason = reason


class UnknownModuleError(TreasuryError):
    """Module id is not in the catalog."""
    def __init__(self, module_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.module_id = module_id
        super().__init__(
            f"Module '{module_id}' not found",
            "MODULE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx,
        )
        self.module_id = module_id


class InvalidTransitionError(TreasuryError):
    """Unlock operation attempted from a status that doesn't permit it."""
    def __init__(
        self,
        module_id: str,
        current_status: str,
        operation: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.module_id = module_id
        ctx.operation = operation
        super().__init__(
            f"Cannot {operation} module '{module_id}' from status '{current_status}'",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, ctx,
        )
        self.module_id = module_id
        self.current_status = current_status
        self.operation = operation


class InvalidTierTableError(TreasuryError):
    """Tier table does not partition [0, inf) or a split does not sum to 100."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid tier table: {message}",
            "INVALID_TIER_TABLE", ErrorCategory.VALIDATION,
            ErrorSeverity.CRITICAL, context,
        )


# ─── Infrastructure Errors ──────────────────────────────────────

class PersistenceError(TreasuryError):
    """Reading or writing durable state failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Persistence {operation} failed: {message}",
            "PERSISTENCE_ERROR", ErrorCategory.PERSISTENCE,
            ErrorSeverity.CRITICAL, ctx,
        )
        self.operation = operation


class ConcurrencyError(PersistenceError):
    """Another writer advanced the stored ledger since it was loaded."""
    def __init__(self, expected_version: int, context: ErrorContext | None = None):
        super().__init__(
            f"ledger version {expected_version} is stale", "commit", context,
        )
        self.code = "CONCURRENCY_CONFLICT"
        self.category = ErrorCategory.CONFLICT
        self.expected_version = expected_version
