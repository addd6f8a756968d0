"""Domain exceptions raised by the account workflow."""


class AccountError(Exception):
    """Base account workflow exception."""


class ConflictError(AccountError):
    """Duplicate pending inquiry, duplicate membership or conflicting account role."""


class NotFoundError(AccountError):
    """Unknown inquiry, user or team member."""


class InvalidStateError(AccountError):
    """Operation not allowed in the current inquiry state (e.g. already resolved)."""


class ValidationError(AccountError):
    """Invalid user input, such as a missing proof-of-payment image."""
