"""
Exceptions shared by the stores and the unlock processor.
Only infrastructure faults are raised to callers of the unlock processor;
business outcomes travel as typed results (see app.services.unlock.failure_types).
"""


class StoreUnavailable(Exception):
    """Ledger/entitlement storage (or the account lock) could not be reached.
    Never leaves a partial charge behind; safe to retry."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class UnknownVertical(LookupError):
    """Vertical key is not present in the registry."""

    def __init__(self, key: str):
        super().__init__(f"Unknown vertical: {key}")
        self.key = key
