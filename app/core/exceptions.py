# app/core/exceptions.py
"""Custom exceptions for the File Search Gateway."""

from typing import Optional, Dict, Any


class FileSearchGatewayException(Exception):
    """Base exception for all gateway errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# ===================
# Request Exceptions
# ===================

class RequestException(FileSearchGatewayException):
    """Base exception for invalid client input."""
    status_code = 400


class MissingFieldError(RequestException):
    """One or more required fields are absent."""

    def __init__(self, message: str, fields: Optional[list] = None):
        super().__init__(
            message=message,
            error_code="MISSING_FIELD",
            details={"fields": fields} if fields else {}
        )


class InvalidApiKeyError(RequestException):
    """API key cannot be used to build a vendor client."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="INVALID_API_KEY"
        )


# ===================
# Store Exceptions
# ===================

class StoreException(FileSearchGatewayException):
    """Base exception for store-related errors."""
    pass


class StoreNotFoundError(StoreException):
    """Store not found in metadata."""

    status_code = 404

    def __init__(self, store_name: str):
        super().__init__(
            message="Store not found",
            error_code="STORE_NOT_FOUND",
            details={"store_name": store_name}
        )


class StoreAlreadyExistsError(StoreException):
    """A store with the same name is already registered."""

    status_code = 400

    def __init__(self, store_name: str):
        super().__init__(
            message="Store already exists",
            error_code="STORE_ALREADY_EXISTS",
            details={"store_name": store_name}
        )


class NoResolvableStoresError(StoreException):
    """None of the requested store names are known."""

    status_code = 400

    def __init__(self, requested: list):
        super().__init__(
            message="No valid File Search stores found for provided store names.",
            error_code="NO_RESOLVABLE_STORES",
            details={"requested": requested}
        )


# ===================
# Vendor Exceptions
# ===================

class VendorException(FileSearchGatewayException):
    """Base exception for vendor API errors."""
    pass


class VendorError(VendorException):
    """Vendor call failed (network error, SDK error, bad response)."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VENDOR_ERROR"
        )


class VendorRequestError(VendorException):
    """Vendor rejected a request; status and body are passed through."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            message=body,
            error_code="VENDOR_REQUEST_REJECTED",
            details={"vendor_status": status_code},
            status_code=status_code
        )


# ===================
# Storage Exceptions
# ===================

class StorageError(FileSearchGatewayException):
    """Metadata blob could not be persisted."""

    def __init__(self, message: str):
        super().__init__(
            message=f"Metadata storage failed: {message}",
            error_code="STORAGE_ERROR"
        )
