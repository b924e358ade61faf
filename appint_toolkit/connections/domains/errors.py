"""Exception types raised by connection operations."""
from typing import List, Optional


class ConnectionsError(Exception):
    """Base class for connection management errors."""
    pass


class DecodeError(ConnectionsError, ValueError):
    """Input document is not valid JSON."""
    pass


class ValidationError(ConnectionsError, ValueError):
    """Document is missing required fields or holds invalid values."""
    pass


class MissingConfigError(ConnectionsError):
    """Config variables required to grant a permission were not set."""
    pass


class SecretFileNotFoundError(ConnectionsError, FileNotFoundError):
    """Local file holding secret material does not exist."""
    pass


class SecretFileReadError(ConnectionsError, OSError):
    """Local file holding secret material could not be read."""
    pass


class DecryptionError(ConnectionsError):
    """Cloud KMS could not decrypt the secret payload."""
    pass


class SecretStoreError(ConnectionsError):
    """Secret Manager rejected a create or IAM call."""
    pass


class MalformedSecretPathError(ConnectionsError, ValueError):
    """Secret version string does not follow projects/*/secrets/*/versions/*."""
    pass


class TransportError(ConnectionsError):
    """HTTP call to a Google API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 body: str = "", url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.url = url


class ImportFailedError(ConnectionsError):
    """One or more connection files failed to import."""

    def __init__(self, errors: List[str]):
        super().__init__("\n".join(errors))
        self.errors = errors
