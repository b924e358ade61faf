"""GCP Secret Manager client wrapper."""
import logging

from google.api_core import exceptions as google_exceptions
from google.cloud import secretmanager

from .errors import SecretStoreError

logger = logging.getLogger(__name__)

SECRET_ACCESSOR_ROLE = "roles/secretmanager.secretAccessor"


class GCPSecretClient:
    """Wrapper around GCP Secret Manager client."""

    def __init__(self):
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def create_secret(self, project_id: str, secret_name: str, payload: bytes) -> str:
        """
        Store payload as a new version of a secret, creating the secret if needed.

        Args:
            project_id: GCP project ID
            secret_name: Secret ID (not the full resource name)
            payload: Secret material

        Returns:
            Full secret version name, e.g. projects/p/secrets/s/versions/3

        Raises:
            SecretStoreError: If Secret Manager rejects either call
        """
        parent = f"projects/{project_id}"
        secret_path = f"{parent}/secrets/{secret_name}"
        try:
            self.client.create_secret(
                request={
                    "parent": parent,
                    "secret_id": secret_name,
                    "secret": {"replication": {"automatic": {}}},
                }
            )
            logger.info(f"Created secret {secret_path}")
        except google_exceptions.AlreadyExists:
            logger.info(f"Secret {secret_path} already exists, adding a new version")
        except google_exceptions.GoogleAPIError as e:
            raise SecretStoreError(f"Unable to create secret {secret_path}: {e}") from e

        try:
            version = self.client.add_secret_version(
                request={"parent": secret_path, "payload": {"data": payload}}
            )
        except google_exceptions.GoogleAPIError as e:
            raise SecretStoreError(f"Unable to add a version to {secret_path}: {e}") from e
        return version.name

    def grant_accessor(self, project_id: str, secret_name: str, service_account: str) -> None:
        """
        Allow a service account to read a secret's versions.

        Raises:
            SecretStoreError: If the IAM policy cannot be read or written
        """
        secret_path = f"projects/{project_id}/secrets/{secret_name}"
        member = f"serviceAccount:{service_account}"
        try:
            policy = self.client.get_iam_policy(request={"resource": secret_path})
            policy.bindings.add(role=SECRET_ACCESSOR_ROLE, members=[member])
            self.client.set_iam_policy(request={"resource": secret_path, "policy": policy})
        except google_exceptions.GoogleAPIError as e:
            raise SecretStoreError(f"Unable to grant {SECRET_ACCESSOR_ROLE} on {secret_path}: {e}") from e
        logger.info(f"Granted {SECRET_ACCESSOR_ROLE} on {secret_path} to {member}")
