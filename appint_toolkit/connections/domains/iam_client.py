"""IAM bindings for the resources a connector's service account needs to reach."""
import logging
from typing import Any, Dict

from .errors import TransportError
from .http_client import HttpClient

logger = logging.getLogger(__name__)

PUBSUB_API = "https://pubsub.googleapis.com/v1"
BIGQUERY_API = "https://bigquery.googleapis.com/bigquery/v2"
RESOURCE_MANAGER_API = "https://cloudresourcemanager.googleapis.com/v1"
IAM_API = "https://iam.googleapis.com/v1"

PUBSUB_ROLE = "roles/pubsub.editor"
BIGQUERY_DATASET_ROLE = "WRITER"
CLOUD_STORAGE_ROLE = "roles/storage.admin"
CLOUD_SQL_ROLE = "roles/cloudsql.client"


def _add_binding(policy: Dict[str, Any], role: str, member: str) -> bool:
    """Add member to role in policy. Returns False if it was already bound."""
    bindings = policy.setdefault("bindings", [])
    for binding in bindings:
        if binding.get("role") == role:
            members = binding.setdefault("members", [])
            if member in members:
                return False
            members.append(member)
            return True
    bindings.append({"role": role, "members": [member]})
    return True


class IAMClient:
    """Grants roles to service accounts through the Google REST APIs."""

    def __init__(self, http: HttpClient):
        self.http = http

    def _grant(self, resource_url: str, role: str, service_account: str, get_method: str) -> None:
        member = f"serviceAccount:{service_account}"
        with self.http.ctx.suppressed_output():
            if get_method == "GET":
                policy = self.http.request(f"{resource_url}:getIamPolicy")
            else:
                policy = self.http.request(f"{resource_url}:getIamPolicy", body={})
            if not _add_binding(policy, role, member):
                logger.debug(f"{member} already has {role} on {resource_url}")
                return
            self.http.request(f"{resource_url}:setIamPolicy", body={"policy": policy})
        logger.info(f"Granted {role} to {member}")

    def set_pubsub_permission(self, project_id: str, topic_id: str, service_account: str) -> None:
        self._grant(f"{PUBSUB_API}/projects/{project_id}/topics/{topic_id}",
                    PUBSUB_ROLE, service_account, get_method="GET")

    def set_bigquery_permission(self, project_id: str, dataset_id: str, service_account: str) -> None:
        """Add a WRITER access entry for the service account on a dataset."""
        url = f"{BIGQUERY_API}/projects/{project_id}/datasets/{dataset_id}"
        entry = {"role": BIGQUERY_DATASET_ROLE, "userByEmail": service_account}
        with self.http.ctx.suppressed_output():
            dataset = self.http.request(url)
            access = dataset.get("access", [])
            if entry in access:
                logger.debug(f"{service_account} already has {BIGQUERY_DATASET_ROLE} on {dataset_id}")
                return
            access.append(entry)
            self.http.request(url, body={"access": access}, method="PATCH")
        logger.info(f"Granted {BIGQUERY_DATASET_ROLE} on dataset {dataset_id} to {service_account}")

    def set_cloud_storage_permission(self, project_id: str, service_account: str) -> None:
        self._grant(f"{RESOURCE_MANAGER_API}/projects/{project_id}",
                    CLOUD_STORAGE_ROLE, service_account, get_method="POST")

    def set_cloud_sql_permission(self, project_id: str, service_account: str) -> None:
        self._grant(f"{RESOURCE_MANAGER_API}/projects/{project_id}",
                    CLOUD_SQL_ROLE, service_account, get_method="POST")

    def create_service_account(self, email: str) -> None:
        """Create the service account named by email unless it already exists."""
        account_id, _, domain = email.partition("@")
        project_id = domain.split(".")[0]
        url = f"{IAM_API}/projects/{project_id}/serviceAccounts"
        with self.http.ctx.suppressed_output():
            try:
                self.http.request(f"{url}/{email}")
                logger.debug(f"Service account {email} already exists")
                return
            except TransportError as e:
                if e.status_code != 404:
                    raise
            self.http.request(url, body={"accountId": account_id,
                                         "serviceAccount": {"displayName": account_id}})
        logger.info(f"Created service account {email}")

    def get_compute_default_service_account(self, project_id: str) -> str:
        with self.http.ctx.suppressed_output():
            project = self.http.request(f"{RESOURCE_MANAGER_API}/projects/{project_id}")
        number = project.get("projectNumber")
        if not number:
            raise TransportError(f"Project number not returned for {project_id}")
        return f"{number}-compute@developer.gserviceaccount.com"
