"""Turn secret details from a connection file into Secret Manager versions."""
import os
import logging
import posixpath
from typing import Optional

from ..domains.context import ClientContext
from ..domains.errors import SecretFileNotFoundError, SecretFileReadError
from ..domains.kms_client import KMSClient
from ..domains.models import Secret, SecretDetails
from ..domains.resource_names import SecretVersionName
from ..domains.secret_store import GCPSecretClient

logger = logging.getLogger(__name__)

# Version assumed to exist when secrets are not created by this tool
ASSUMED_SECRET_VERSION = "1"


def read_secret_file(path: str) -> bytes:
    """
    Read raw secret material from a local file.

    Raises:
        SecretFileNotFoundError: If the file does not exist
        SecretFileReadError: If the file cannot be read
    """
    if not os.path.exists(path):
        raise SecretFileNotFoundError(f"Secret file not found: {path}")
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise SecretFileReadError(f"Failed to read secret file {path}: {e}") from e


class SecretResolver:
    """Creates secret versions from local files, optionally decrypting them with Cloud KMS."""

    def __init__(self, ctx: ClientContext, secret_store: Optional[GCPSecretClient] = None,
                 kms_client: Optional[KMSClient] = None):
        self.ctx = ctx
        self.secret_store = secret_store or GCPSecretClient()
        self.kms_client = kms_client or KMSClient()

    def resolve(self, reference: str, encryption_key: str, secret_name: str) -> str:
        """
        Upload the contents of a local file to Secret Manager.

        Args:
            reference: Path to the file holding the secret (ciphertext if encryption_key is set)
            encryption_key: KMS key relative to the project, e.g.
                locations/global/keyRings/ring/cryptoKeys/key; empty for plaintext files
            secret_name: Secret ID to store the payload under

        Returns:
            The created secret version name

        Raises:
            SecretFileNotFoundError, SecretFileReadError, DecryptionError, SecretStoreError
        """
        payload = read_secret_file(reference)

        if encryption_key:
            key_path = posixpath.join("projects", self.ctx.project_id, encryption_key.lstrip("/"))
            payload = self.kms_client.decrypt_symmetric(key_path, payload)

        version = self.secret_store.create_secret(self.ctx.project_id, secret_name, payload)
        logger.info(f"Stored secret {secret_name} as {version}")
        return version

    def assume_version(self, secret_name: str) -> str:
        """Version name for a secret that is expected to exist already."""
        return str(SecretVersionName(project=self.ctx.project_id, secret=secret_name,
                                     version=ASSUMED_SECRET_VERSION))

    def materialize(self, details: SecretDetails, encryption_key: str, create_secret: bool) -> Secret:
        if create_secret:
            version = self.resolve(details.reference, encryption_key, details.secret_name)
        else:
            version = self.assume_version(details.secret_name)
        return Secret(secret_version=version)
