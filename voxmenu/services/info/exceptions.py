"""Custom exceptions for info providers."""


class InfoProviderError(Exception):
    """Base exception for weather / name day lookups."""

    def __init__(self, message: str, provider: str = "") -> None:
        super().__init__(message)
        self.provider = provider
