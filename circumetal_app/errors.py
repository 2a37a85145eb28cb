"""
Exception taxonomy for the LCA AI orchestration layer.

Only InvalidRequestError and ConfigurationError ever reach a caller or an
operator. Transient upstream failures and malformed model output are absorbed
inside the services and turned into degraded but schema-valid payloads.
"""


class LCAServiceError(Exception):
    """Base class for every error raised by circumetal_app."""


class InvalidRequestError(LCAServiceError):
    """Caller input is missing or malformed. Surfaced as a 400, never retried."""


class ConfigurationError(LCAServiceError):
    """Startup configuration is unusable (e.g. no credentials outside mock mode)."""


class TransientServiceError(LCAServiceError):
    """One call to the upstream model service failed and may be retried."""


class MalformedResponseError(LCAServiceError):
    """Model output could not be coerced into the expected JSON schema."""
