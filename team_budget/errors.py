"""Error taxonomy shared by the storage, service and report layers.

The calculation core (:mod:`team_budget.weeks`, :mod:`team_budget.calculations`)
never raises; these exceptions only describe boundary and persistence failures.
"""

from __future__ import annotations

from typing import Dict, Optional


class BudgetError(Exception):
    """Base class for all team budget errors."""


class ValidationError(BudgetError, ValueError):
    """A budget model payload failed boundary validation.

    ``errors`` maps each offending field name to a human readable message.
    """

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None) -> None:
        self.errors = dict(errors)
        if message is None:
            fields = ", ".join(sorted(self.errors)) or "payload"
            message = f"Invalid budget model fields: {fields}"
        super().__init__(message)


class NotFound(BudgetError, LookupError):
    """The referenced budget model does not exist."""

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        super().__init__(f"Budget model with id {model_id} not found")


class StorageUnavailable(BudgetError):
    """The persistence backend failed; no cached or partial data is substituted."""

    def __init__(self, operation: str, message: Optional[str] = None) -> None:
        self.operation = operation
        super().__init__(message or f"Budget model storage unavailable during {operation}")
