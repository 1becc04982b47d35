"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional, Any


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ConflictException(ApplicationException):
    """Exception when a write would duplicate an existing active record."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Any] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id is not None:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class InvalidDateFormatException(ValidationException):
    """Raised when a date or datetime string cannot be parsed."""

    def __init__(self, value: Any, details: Optional[dict] = None):
        self.value = value
        super().__init__(
            f"Invalid date format: '{value}'",
            details or {"value": str(value)}
        )


class TicketNotFoundException(ResourceNotFoundException):
    """Raised when the ticket an SLA is requested for does not exist."""

    def __init__(self, ticket_id: Any):
        super().__init__("Ticket", ticket_id)


class NoApplicablePolicyException(ResourceNotFoundException):
    """Raised when no active SLA policy matches a ticket."""

    def __init__(self, ticket_id: Optional[Any] = None):
        self.ticket_id = ticket_id
        self.resource_type = "SLA policy"
        self.resource_id = None
        message = "No applicable SLA policy found"
        if ticket_id is not None:
            message += f" for ticket {ticket_id}"
        ApplicationException.__init__(
            self,
            message,
            {"ticket_id": ticket_id} if ticket_id is not None else None
        )


class ScheduleUnresolvableException(ConfigurationException):
    """
    Raised when the business calendar cannot be resolved.

    Either no business-hours schedule exists for a scope or the walk over
    the calendar hit its iteration cap without finding an open window.
    """


class NoBusinessDayFoundException(ScheduleUnresolvableException):
    """Raised when no open business day exists within the iteration cap."""

    def __init__(self, max_iterations: int, details: Optional[dict] = None):
        self.max_iterations = max_iterations
        super().__init__(
            f"No business day found within {max_iterations} days",
            details or {"max_iterations": max_iterations}
        )
