"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """

    retryable = False


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a movement already claimed by another line."""


class InvalidTransitionError(ConflictError):
    """A statement line cannot move from its current status to the requested one."""


class PermissionDeniedError(DomainError):
    """Entity belongs to a different tenant than the caller."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class TransientError(DomainError):
    """Storage or candidate pool unreachable; nothing was committed."""

    retryable = True


class CandidatePoolUnavailableError(TransientError):
    """The candidate pool could not be queried."""


class ReconciliationTimeoutError(TransientError):
    """A matching run exceeded the caller's timeout before committing."""


def bank_account_not_found(account_id: int) -> str:
    """Return message for missing bank account."""
    return f"Bank account {account_id} not found"


def statement_not_found(statement_id: int) -> str:
    """Return message for missing statement."""
    return f"Statement {statement_id} not found"


def line_not_found(line_id: int) -> str:
    """Return message for missing statement line."""
    return f"Statement line {line_id} not found"


def movement_not_found(kind: str, movement_id: str) -> str:
    """Return message for missing ledger movement."""
    return f"Movement {kind}:{movement_id} not found"


def cross_tenant_access(entity: str, entity_id: object) -> str:
    """Return message for access to another tenant's data."""
    return f"Access denied to {entity} {entity_id}"


def duplicate_account_number(account_number: str) -> str:
    """Return message for duplicate bank account number."""
    return f"Bank account with number '{account_number}' already exists"


def movement_already_claimed(kind: str, movement_id: str, line_id: int) -> str:
    """Return message when a movement is claimed by another statement line."""
    return f"Movement {kind}:{movement_id} is already matched to statement line {line_id}"


def account_delete_blocked(account_id: int, statement_count: int) -> str:
    """Return message when a bank account still has statements."""
    return (
        f"Cannot delete bank account {account_id}: it has "
        f"{statement_count} statement{'s' if statement_count != 1 else ''}. "
        "Deactivate it instead."
    )


def account_delete_blocked_by_movements(account_id: int, movement_count: int) -> str:
    """Return message when ledger movements still reference a bank account."""
    return (
        f"Cannot delete bank account {account_id}: the ledger has "
        f"{movement_count} movement{'s' if movement_count != 1 else ''} for it. "
        "Deactivate it instead."
    )
