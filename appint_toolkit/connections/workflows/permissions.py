"""Grant a connection's service account access to the resources its connector uses."""
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from . import policy
from ..domains.errors import ConnectionsError, MissingConfigError
from ..domains.iam_client import IAMClient
from ..domains.models import ConfigVariable
from ..domains.secret_store import GCPSecretClient

logger = logging.getLogger(__name__)

GrantFn = Callable[[IAMClient, Dict[str, str], str], None]

# connector name -> (config variables the grant needs, grant call)
CONNECTOR_GRANTS: Dict[str, Tuple[Sequence[str], GrantFn]] = {
    "pubsub": (
        ("project_id", "topic_id"),
        lambda iam, v, sa: iam.set_pubsub_permission(v["project_id"], v["topic_id"], sa),
    ),
    "bigquery": (
        ("project_id", "dataset_id"),
        lambda iam, v, sa: iam.set_bigquery_permission(v["project_id"], v["dataset_id"], sa),
    ),
    "gcs": (
        ("project_id",),
        lambda iam, v, sa: iam.set_cloud_storage_permission(v["project_id"], sa),
    ),
}
for _cloudsql in ("cloudsql-mysql", "cloudsql-postgresql", "cloudsql-sqlserver"):
    CONNECTOR_GRANTS[_cloudsql] = (
        ("project_id",),
        lambda iam, v, sa: iam.set_cloud_sql_permission(v["project_id"], sa),
    )


def _string_values(config_variables: List[ConfigVariable], keys: Sequence[str]) -> Dict[str, str]:
    values = {}
    for variable in config_variables:
        if variable.key in keys and isinstance(variable.value, str) and variable.value:
            values[variable.key] = variable.value
    return values


class PermissionGrantor:
    """Applies the IAM binding a connector type needs."""

    def __init__(self, iam: IAMClient, secret_store: Optional[GCPSecretClient] = None):
        self.iam = iam
        self.secret_store = secret_store or GCPSecretClient()

    def grant_if_needed(self, connector_name: str, config_variables: List[ConfigVariable],
                        service_account: str) -> None:
        """
        Grant the service account access to the connector's target resource.

        Connectors without an entry in CONNECTOR_GRANTS need nothing.

        Raises:
            MissingConfigError: If a config variable the grant needs is not set.
                Checked before any IAM call is made.
        """
        entry = CONNECTOR_GRANTS.get(connector_name)
        if entry is None:
            return
        required, grant = entry

        values = _string_values(config_variables, required)
        missing = [key for key in required if key not in values]
        if missing:
            raise MissingConfigError(
                f"{' and '.join(missing)} must be set to grant permissions for connector {connector_name}"
            )

        try:
            grant(self.iam, values, service_account)
        except ConnectionsError as e:
            if not policy.IGNORE_CONNECTOR_GRANT_ERRORS:
                raise
            logger.warning(f"Unable to update permissions for the service account: {e}")

    def grant_secret_access(self, project_id: str, secret_name: str, service_account: str) -> None:
        """Allow the service account to read a secret. Failures propagate."""
        self.secret_store.grant_accessor(project_id, secret_name, service_account)
