"""
Error taxonomy for Coffee Discovery.

Only InvalidQuery and PersistenceFailure (plus the auth, permission and form
errors raised by the catalog management surfaces) are meant to reach a user.
ExtractionDegraded, GenerationDegraded and LoggingFailure are raised and caught
internally; callers see the safe default instead.
"""


class CoffeeDiscoveryError(RuntimeError):
    """Base class for every error raised by this package."""


class ConfigurationError(CoffeeDiscoveryError):
    """Required endpoint or credential is missing."""


class InvalidQuery(CoffeeDiscoveryError):
    """Search text was empty or whitespace only."""


class ExtractionDegraded(CoffeeDiscoveryError):
    """Preference extraction failed; an empty preference is used instead."""


class GenerationDegraded(CoffeeDiscoveryError):
    """Text generation failed; a fixed fallback text is used instead."""


class LoggingFailure(CoffeeDiscoveryError):
    """A best-effort write failed. Never surfaced to the caller."""


class PersistenceFailure(CoffeeDiscoveryError):
    """The data store rejected or could not serve a request."""


class SearchFailure(PersistenceFailure):
    """A search aborted because the catalog could not be queried."""


class NotFound(PersistenceFailure):
    """A single-row lookup matched nothing."""


class AuthenticationError(CoffeeDiscoveryError):
    """Sign-up, sign-in or session restore was rejected."""


class PermissionDenied(CoffeeDiscoveryError):
    """The current role may not perform this operation."""


class FormValidationError(CoffeeDiscoveryError):
    """Submitted form data is incomplete or malformed."""
