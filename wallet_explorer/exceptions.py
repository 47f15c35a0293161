"""
Wallet Explorer Exceptions - Custom exception hierarchy.

Classification and metadata resolution degrade to fallback values instead of
raising. Only boundary validation and ledger connectivity surface here.
"""

from datetime import datetime
from typing import Any, Optional


class WalletExplorerError(Exception):
    """Base exception for all wallet explorer errors."""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.component = component
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "component": self.component,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.component:
            parts.append(f"[component={self.component}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class InvalidAddressError(WalletExplorerError):
    """Address is not 0x followed by 40 hex characters, or fails its checksum."""

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        component: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, component, original_error, context)
        self.address = address

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["address"] = self.address
        return data


class FutureDateError(WalletExplorerError):
    """Requested timestamp is later than the latest known block."""

    def __init__(
        self,
        message: str,
        target_timestamp: int,
        latest_timestamp: int,
        component: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, component, None, context)
        self.target_timestamp = target_timestamp
        self.latest_timestamp = latest_timestamp

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "target_timestamp": self.target_timestamp,
            "latest_timestamp": self.latest_timestamp,
        })
        return data


class NetworkError(WalletExplorerError):
    """Ledger or explorer call failed or timed out."""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, component, original_error, context)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "response_body": self.response_body,
            "request_url": self.request_url,
        })
        return data


class RateLimitError(NetworkError):
    """Rate limit exceeded error."""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        retry_after_seconds: Optional[int] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            component,
            status_code=429,
            original_error=original_error,
            context=context,
        )
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class ExplorerAPIError(NetworkError):
    """Explorer answered with status "0" and a message that is not "no results"."""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        api_message: Optional[str] = None,
        response_body: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            component,
            response_body=response_body,
            context=context,
        )
        self.api_message = api_message

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["api_message"] = self.api_message
        return data


class ConfigurationError(WalletExplorerError):
    """Required configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        component: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, component, original_error, context)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data
