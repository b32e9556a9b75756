"""Exception types for the context layer.

Store operations report failures as `PersistenceResponse` values. Exceptions
are used inside the layer (identity and template resolution) and at one public
seam: the context type factory.
"""

from __future__ import annotations


class ContextError(Exception):
    """Base class for context layer errors."""


class IdentityError(ContextError):
    """A context name required by the type's identity rule is missing."""


class TemplateNotFoundError(ContextError):
    """Neither a project template nor a built-in default exists."""


class ContextTypeError(ContextError):
    """The factory cannot bind a context type; carries user-facing messages."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class ConfigUnavailableError(ContextTypeError):
    """Project configuration could not be loaded."""


class UnknownContextTypeError(ContextTypeError):
    """The requested type name is not configured for the project."""
