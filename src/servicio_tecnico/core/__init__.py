"""
Core Module
============

Shared core utilities and abstractions used across the application.
"""

from servicio_tecnico.core.exceptions import (
    ApplicationException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    AccessDeniedException,
    TransicionInvalidaException,
)

__all__ = [
    "ApplicationException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "AccessDeniedException",
    "TransicionInvalidaException",
]
