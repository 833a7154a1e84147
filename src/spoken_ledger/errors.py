class SpokenLedgerError(Exception):
    """Base class for errors raised by spoken_ledger."""


class CategoryValidationError(SpokenLedgerError, ValueError):
    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class CategoryConflictError(SpokenLedgerError):
    """The store already holds a category with this name (case-insensitive)."""

    def __init__(self, name: str, message: str | None = None) -> None:
        super().__init__(message or f"Category name already exists: {name!r}")
        self.name = name


class CategoryResolutionError(SpokenLedgerError):
    pass


class CategorizerUnavailableError(SpokenLedgerError):
    pass


class DraftSubmittedError(SpokenLedgerError):
    pass
