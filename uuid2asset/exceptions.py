"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class Uuid2AssetError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(Uuid2AssetError):
    """Raised for issues related to configuration loading or validation."""


class InvalidIdentifierError(Uuid2AssetError):
    """Raised when a compact identifier contains characters outside the base64 alphabet."""


class MalformedManifestError(Uuid2AssetError):
    """Raised when a bundle manifest is missing required fields or is structurally invalid."""


class EmptyResultSetError(Uuid2AssetError):
    """
    Raised when no asset of a bundle could be found on the server.
    This usually means the manifest uses a naming scheme that is not understood.
    """


class TransientNetworkError(Uuid2AssetError):
    """Raised for a non-2xx response other than 404. The request should be retried."""

    def __init__(self, url: str, status: int):
        super().__init__(f"HTTP error {status} for {url}")
        self.url = url
        self.status = status


class DiscoveryError(Uuid2AssetError):
    """Raised when bundle manifests cannot be discovered from an HTML entry point."""
