"""Exception taxonomy for tickmark-core."""

from typing import Optional


class TickmarkError(Exception):
    """Base exception for all tickmark errors."""

    pass


# Config errors


class ConfigError(TickmarkError):
    """Failed to load or validate configuration."""

    pass


# Todo model errors


class InvalidTargetError(TickmarkError):
    """An operation named a todo id that is stale or does not exist."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Todo item not found: {item_id}")


# Transaction errors


class TransactionOpFailure(TickmarkError):
    """An operation raised while a transaction batch was being applied.

    Operations applied before the failure stay applied; the remaining queued
    operations were skipped.
    """

    def __init__(
        self,
        error: BaseException,
        applied: int,
        skipped: int,
        op_name: Optional[str] = None,
    ) -> None:
        self.error = error
        self.applied = applied
        self.skipped = skipped
        self.op_name = op_name
        name = op_name or "operation"
        super().__init__(
            f"Transaction {name} failed after {applied} applied op(s), "
            f"{skipped} skipped: {error}"
        )
