"""Exception types raised by the switchboard engine and its collaborators."""


class SwitchboardError(Exception):
    """Base class for all switchboard errors."""


class ConfigurationError(SwitchboardError, ValueError):
    """A backend or store was used without the settings it needs."""


class ProviderError(SwitchboardError):
    """A model provider call did not succeed.

    Raised for non-success HTTP responses, transport failures and timeouts.
    Never retried by the router.
    """

    def __init__(self, backend: str, message: str, status_code: int | None = None):
        self.backend = backend
        self.status_code = status_code
        detail = f"{backend} {status_code}: {message}" if status_code else f"{backend}: {message}"
        super().__init__(detail)


class StoreError(SwitchboardError):
    """A collaborator store (graph, cache, agent store, CRM) failed."""
