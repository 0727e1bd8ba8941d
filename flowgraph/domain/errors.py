"""Domain error hierarchy for clean exception handling."""
from __future__ import annotations


class DomainError(Exception):
    """Base for all domain errors."""


class NotFoundError(DomainError):
    """Resource not found."""


class ValidationError(DomainError):
    """Invalid input or state."""


class ConflictError(DomainError):
    """Resource conflict (e.g., mutation while the graph is locked)."""


class EditModeError(ConflictError):
    """Structural mutation attempted while edit mode is off."""


class BackendUnavailableError(DomainError):
    """Workflow engine unreachable or answered with an unexpected status."""


class LLMUnavailableError(DomainError):
    """No language model endpoint produced a usable completion."""
