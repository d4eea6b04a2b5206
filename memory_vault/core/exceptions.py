"""Error taxonomy for Memory Vault.

Every error carries the HTTP status it maps to and the message that may be
shown to a caller. Internal failures share the generic ``"Server error"``
message; the detailed ``message`` only goes to the logs.
"""

from typing import Any, Dict, Mapping, Optional, Sequence

SERVER_ERROR_MESSAGE = "Server error"


class MemoryVaultError(Exception):
    """Base exception for all Memory Vault errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        public_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.public_message = public_message or SERVER_ERROR_MESSAGE
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Response body exposed to the caller."""
        return {"error": self.public_message}


class ValidationError(MemoryVaultError):
    """Raised when required input is missing or malformed."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, public_message=message, details=details)


class NotFoundError(MemoryVaultError):
    """Raised when an id does not resolve to a stored record."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Any = None) -> None:
        message = f"{entity} not found"
        super().__init__(message, public_message=message, details={"id": str(entity_id)})
        self.entity = entity


class MediaStoreError(MemoryVaultError):
    """Raised when the media host cannot complete a request."""


class UploadError(MediaStoreError):
    """Raised when a blob cannot be stored (transport failure or unsupported format)."""


class DeleteError(MediaStoreError):
    """Raised when a blob cannot be removed from the media host."""

    def __init__(self, message: str, public_id: Optional[str] = None) -> None:
        super().__init__(message, details={"public_id": public_id} if public_id else None)


class PersistenceError(MemoryVaultError):
    """Raised when the document store fails."""

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        super().__init__(message, details={"operation": operation} if operation else None)


_LOCATION_PREFIXES = {"body", "query", "path", "form", "header"}


def validation_error_from_pydantic(errors: Sequence[Mapping[str, Any]]) -> ValidationError:
    """Collapses pydantic/FastAPI error entries into a single caller-facing ValidationError."""
    if not errors:
        return ValidationError("Invalid request")
    first = errors[0]
    error_type = first.get("type", "")
    if error_type == "json_invalid":
        return ValidationError("Invalid JSON body")

    parts = [str(part) for part in first.get("loc", ()) if not isinstance(part, int)]
    parts = [part for part in parts if part not in _LOCATION_PREFIXES]
    field = ".".join(parts) or None
    if field is None:
        return ValidationError("Invalid request body")
    if error_type == "missing":
        return ValidationError(f"{field} is required", field=field)
    if error_type == "extra_forbidden":
        return ValidationError(f"Unknown field: {field}", field=field)
    return ValidationError(f"Invalid value for {field}", field=field)
