"""
Error taxonomy shared by the recommendation pipeline and the HTTP layer.

Only input errors and configuration errors are meant to reach the user.
Adapter failures are carried as values (``AdapterError`` inside an
``AdapterResult``) and never raised across the adapter boundary.
"""
from typing import Optional


class InvalidInputError(ValueError):
    """Raised when a reference book or reading history payload is unusable."""

    def __init__(self, error: str, message: Optional[str] = None):
        super().__init__(message or error)
        self.error = error
        self.message = message or error


class ProviderConfigurationError(RuntimeError):
    """Raised when a provider needs a credential that is not configured."""

    def __init__(self, provider: str, setting: str):
        self.provider = provider
        self.setting = setting
        self.error = f"{provider} API token not configured"
        self.message = f"Please add {setting} to your environment variables"
        super().__init__(self.message)


class ProviderError(RuntimeError):
    """Raised when the reading-history provider cannot be read."""
    pass


class PipelineError(RuntimeError):
    """Raised when a pipeline stage fails in a way the pipeline cannot absorb."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class AdapterError(Exception):
    """
    A single failed query inside a candidate source adapter.

    kind is one of: "network", "http", "payload", "configuration", "timeout",
    or "unexpected" when a source raised instead of returning its errors.
    """

    def __init__(self, source: str, kind: str, message: str, query: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.kind = kind
        self.query = query

    def __repr__(self) -> str:
        return f"AdapterError(source={self.source!r}, kind={self.kind!r}, query={self.query!r}, message={str(self)!r})"
