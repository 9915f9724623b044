"""Common exceptions for domain, repository and routing layers."""
from __future__ import annotations


class WebhookServiceError(Exception):
    """Base error for service layer."""


class RepositoryError(WebhookServiceError):
    """Raised when repository operations fail."""


class NotFoundError(RepositoryError):
    """Raised when requested entity is missing."""


class ConflictError(RepositoryError):
    """Raised when a unique key is already taken."""


class AuthenticationError(WebhookServiceError):
    """Raised when an inbound call cannot be authenticated."""


class InvalidStatusTransitionError(WebhookServiceError):
    """Raised when an event attempts an unsupported status change."""


class ConfigurationError(WebhookServiceError):
    """Raised at dispatch time when an endpoint lacks its destination."""


class TransportError(WebhookServiceError):
    """Raised when an outbound delivery cannot reach its destination."""


class JsonPathError(WebhookServiceError):
    """Raised for malformed path-query expressions."""
