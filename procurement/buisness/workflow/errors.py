"""
Domain exceptions for the procurement workflow

These exceptions represent business rule violations and domain-specific errors.
They are raised by the business layer and rendered by the presentation layer;
each carries the HTTP status it maps to.
"""


class ProcurementDomainError(Exception):
    """Base exception for all procurement domain errors"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(ProcurementDomainError):
    """Raised when no identity could be resolved for the caller"""
    status_code = 401


class ForbiddenError(ProcurementDomainError):
    """Raised when the caller's role or ownership does not permit the action"""
    status_code = 403


class NotFoundError(ProcurementDomainError):
    """Raised when a referenced request, site, vendor or inventory item does not exist or is inactive"""
    status_code = 404


class ConflictError(ProcurementDomainError):
    """Raised when the from-state precondition no longer holds"""
    status_code = 409


# The status field doubles as the optimistic-concurrency guard
StaleStateError = ConflictError


class UsageConflictError(ConflictError):
    """Raised when a reference entity that is still in use is deactivated or deleted"""


class ValidationError(ProcurementDomainError):
    """Raised when the payload is malformed or a required value is missing"""
    status_code = 422


class ImmutableRecordError(ProcurementDomainError):
    """Raised when an append-only record is modified or deleted"""
    status_code = 409
