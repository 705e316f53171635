"""Custom exception hierarchy for the Ollama shim."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class KeySourceError(ConfigurationError):
    """Raised when API keys cannot be loaded from their source.

    Attributes:
        message: Error message
        source: Key source description (e.g., 'file:/etc/keys')
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class UpstreamError(ProxyError):
    """Raised when the upstream inference service cannot be reached.

    Attributes:
        message: Error message
        url: Target URL of the failed request (optional)
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class UpstreamConnectionError(UpstreamError):
    """Raised on transport failures: refused connection, DNS, timeout."""


class RequestTooLarge(ProxyError):
    """Request body exceeds size limit."""


class BodyReadError(ProxyError):
    """Request body could not be read from the client."""
