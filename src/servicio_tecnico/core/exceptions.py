"""
Core Exceptions
================

Custom exceptions for the application.

Domain and data-access errors are raised here and translated to HTTP
responses at the application boundary.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class AccessDeniedException(ApplicationException):
    """Raised when a user acts on a resource owned by someone else."""

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"Access to {resource_type} '{resource_id}' denied")


class TransicionInvalidaException(ValidationException):
    """Raised when an order status change is not in the transition graph."""

    def __init__(self, desde: str, hacia: str):
        self.desde = desde
        self.hacia = hacia
        super().__init__(
            f"Transición no permitida: {desde} → {hacia}",
            {"desde": desde, "hacia": hacia}
        )
