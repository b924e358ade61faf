"""Conversion between connection files and Connectors API documents.

A connection file names its connector with connectorDetails and may point at
local secret files through *Details blocks. build_create_request expands such a
file into the document the API accepts. redact_for_export goes the other way,
turning a connection read from the API back into a portable file.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from ..domains.context import ClientContext
from ..domains.errors import ValidationError
from ..domains.iam_client import IAMClient
from ..domains.models import (
    OAUTH2_AUTH_CODE_FLOW,
    OAUTH2_CLIENT_CREDENTIALS,
    OAUTH2_JWT_BEARER,
    SSH_PUBLIC_KEY,
    USER_PASSWORD,
    ConfigVariable,
    Connection,
    ConnectionRequest,
    ConnectorDetails,
    Secret,
    SecretDetails,
)
from ..domains.resource_names import ConnectorVersionName, SecretVersionName
from .permissions import PermissionGrantor
from .secret_resolver import SecretResolver

logger = logging.getLogger(__name__)

PROJECT_ID_PLACEHOLDER = "$PROJECT_ID$"
REGION_PLACEHOLDER = "$REGION$"

SERVICE_ACCOUNT_DOMAIN = ".iam.gserviceaccount.com"

DOCS_URL = ("https://github.com/GoogleCloudPlatform/application-integration-management-toolkit"
            "#connectors-for-third-party-applications")

# First-party connectors whose project_id is exported as a placeholder
GOOGLE_CONNECTORS = frozenset({
    "pubsub",
    "gcs",
    "bigquery",
    "cloudsql-mysql",
    "cloudsql-postgresql",
    "cloudsql-sqlserver",
})

# auth type -> payload attribute holding the secret that can be created from a file
SECRET_FIELDS = {
    USER_PASSWORD: "password",
    OAUTH2_JWT_BEARER: "client_key",
}

UNSUPPORTED_SECRET_TYPES = (OAUTH2_CLIENT_CREDENTIALS, SSH_PUBLIC_KEY, OAUTH2_AUTH_CODE_FLOW)


def substitute_placeholders(config_variables: List[ConfigVariable], project_id: str, region: str) -> None:
    """Replace $PROJECT_ID$ and $REGION$ tokens with the active project and region."""
    for variable in config_variables:
        if not isinstance(variable.value, str):
            continue
        if variable.key == "project_id" and variable.value == PROJECT_ID_PLACEHOLDER:
            variable.value = project_id
        elif "_region" in variable.key and variable.value == REGION_PLACEHOLDER:
            variable.value = region


def minimize(connection: Connection) -> Connection:
    """Replace name and connectorVersion with connectorDetails, in place."""
    version = ConnectorVersionName.parse(connection.connector_version or "")
    connection.connector_details = ConnectorDetails(
        name=version.connector, provider=version.provider, version=version.version
    )
    connection.connector_version = None
    connection.name = None
    return connection


def redact_for_export(connection: Connection) -> Dict[str, Any]:
    """
    Build a portable connection file from a connection read from the API.

    Stored secret versions become secretName details, and the project_id of
    first-party connectors becomes the $PROJECT_ID$ placeholder.

    Raises:
        MalformedSecretPathError: If a stored secret version cannot be parsed.
            The connection is left unchanged in that case.
        ValidationError: If the connector version cannot be parsed
    """
    auth = connection.auth_config
    field_name = SECRET_FIELDS.get(auth.auth_type)
    secret_name = None
    if field_name and auth.payload is not None:
        current = getattr(auth.payload, field_name)
        if isinstance(current, Secret):
            secret_name = SecretVersionName.parse(current.secret_version).secret
    ConnectorVersionName.parse(connection.connector_version or "")

    minimize(connection)
    if secret_name is not None:
        setattr(auth.payload, field_name, SecretDetails(secret_name=secret_name))

    if connection.connector_details.name in GOOGLE_CONNECTORS:
        for variable in connection.config_variables:
            if variable.key == "project_id" and isinstance(variable.value, str):
                variable.value = PROJECT_ID_PLACEHOLDER

    return connection.to_dict()


class DocumentTransformer:
    """Expands connection files into create requests."""

    def __init__(self, ctx: ClientContext, resolver: SecretResolver, grantor: PermissionGrantor,
                 iam: IAMClient):
        self.ctx = ctx
        self.resolver = resolver
        self.grantor = grantor
        self.iam = iam

    def resolve_service_account(self, service_account: str, service_account_project: str,
                                grant_permission: bool) -> Optional[str]:
        """
        Pick the service account the connection runs as.

        An explicit account is normalized to a full email in service_account_project
        (default: active project) and created if missing. Otherwise, when
        permissions are to be granted, the project's default compute identity is
        used. None leaves the server default in place.
        """
        if service_account:
            if SERVICE_ACCOUNT_DOMAIN in service_account:
                service_account = service_account.split("@")[0]
            project = service_account_project or self.ctx.project_id
            email = f"{service_account}@{project}{SERVICE_ACCOUNT_DOMAIN}"
            self.iam.create_service_account(email)
            return email
        if grant_permission:
            return self.iam.get_compute_default_service_account(self.ctx.project_id)
        return None

    def build_create_request(self, content: Union[str, bytes], service_account: str = "",
                             service_account_project: str = "", encryption_key: str = "",
                             grant_permission: bool = False, create_secret: bool = False) -> Dict[str, Any]:
        """
        Turn a connection file into the body of a create request.

        Raises:
            DecodeError: If content is not a JSON object
            ValidationError: If connectorDetails is missing or incomplete
            MissingConfigError: If a permission grant lacks its config variables
            SecretFileNotFoundError, SecretFileReadError, DecryptionError, SecretStoreError:
                If a secret cannot be created
        """
        request = ConnectionRequest.from_json(content)

        if request.connector_details is None:
            raise ValidationError(f"connectorDetails must be set. See {DOCS_URL} for more details")
        request.connector_details.validate()
        details = request.connector_details

        resolved = self.resolve_service_account(service_account, service_account_project, grant_permission)
        if request.service_account is None and resolved:
            request.service_account = resolved

        substitute_placeholders(request.config_variables, self.ctx.project_id, self.ctx.region)

        if grant_permission and request.service_account:
            self.grantor.grant_if_needed(details.name, request.config_variables, request.service_account)

        request.connector_version = str(ConnectorVersionName(
            project=self.ctx.project_id,
            provider=details.provider,
            connector=details.name,
            version=details.version,
        ))
        request.connector_details = None

        if request.auth_config is not None:
            self._materialize_secrets(request, encryption_key, grant_permission, create_secret)

        return request.to_dict()

    def _materialize_secrets(self, request: ConnectionRequest, encryption_key: str,
                             grant_permission: bool, create_secret: bool) -> None:
        auth = request.auth_config
        field_name = SECRET_FIELDS.get(auth.auth_type)

        if field_name is not None:
            if auth.payload is None:
                return
            details = getattr(auth.payload, field_name)
            if not isinstance(details, SecretDetails):
                return
            setattr(auth.payload, field_name,
                    self.resolver.materialize(details, encryption_key, create_secret))
            if create_secret and grant_permission and request.service_account:
                self.grantor.grant_secret_access(self.ctx.project_id, details.secret_name,
                                                 request.service_account)
        elif auth.auth_type in UNSUPPORTED_SECRET_TYPES:
            if create_secret:
                logger.warning(f"Creating secrets for {auth.auth_type} is not implemented")
        else:
            logger.warning("No auth type found, assuming service account auth")
