"""Cloud KMS client wrapper."""
import logging

from google.api_core import exceptions as google_exceptions
from google.cloud import kms

from .errors import DecryptionError

logger = logging.getLogger(__name__)


class KMSClient:
    """Wrapper around the Cloud KMS client."""

    def __init__(self):
        self._client = None

    @property
    def client(self) -> kms.KeyManagementServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = kms.KeyManagementServiceClient()
        return self._client

    def decrypt_symmetric(self, key_path: str, ciphertext: bytes) -> bytes:
        """
        Decrypt data encrypted with a symmetric Cloud KMS key.

        Args:
            key_path: projects/{project}/locations/{location}/keyRings/{ring}/cryptoKeys/{key}
            ciphertext: Encrypted payload

        Returns:
            Plaintext bytes

        Raises:
            DecryptionError: If Cloud KMS rejects the request
        """
        try:
            response = self.client.decrypt(request={"name": key_path, "ciphertext": ciphertext})
        except google_exceptions.GoogleAPIError as e:
            raise DecryptionError(f"Unable to decrypt with {key_path}: {e}") from e
        logger.debug(f"Decrypted payload with {key_path}")
        return response.plaintext
