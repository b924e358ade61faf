"""Create, read, update, delete, import and export connections."""
import os
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from . import policy
from ..domains.context import ClientContext
from ..domains.errors import ConnectionsError, ImportFailedError, TransportError
from ..domains.http_client import HttpClient, connections_url, operations_url
from ..domains.iam_client import IAMClient
from ..domains.kms_client import KMSClient
from ..domains.models import Connection, ConnectionRequest
from ..domains.resource_names import short_name
from ..domains.secret_store import GCPSecretClient
from .permissions import PermissionGrantor
from .poller import OperationState, wait_for_operation
from .resource_listing import paging_params
from .secret_resolver import SecretResolver
from .transformer import DocumentTransformer, minimize, redact_for_export

logger = logging.getLogger(__name__)

# Export reads a single page of this size
MAX_PAGE_SIZE = 1000


def _json_files(folder: str):
    """
    Yield .json files under folder in sorted walk order.

    A folder that cannot be listed raises when it is the root folder, or when
    policy.IGNORE_IMPORT_WALK_ERRORS is off. Other unreadable subfolders are
    logged and skipped.
    """
    root_folder = os.path.normpath(folder)

    def _on_error(error: OSError) -> None:
        if not policy.IGNORE_IMPORT_WALK_ERRORS or os.path.normpath(error.filename or "") == root_folder:
            raise error
        logger.warning(f"skipping folder that could not be read: {error}")

    for root, dirs, files in os.walk(folder, onerror=_on_error):
        dirs.sort()
        for file_name in sorted(files):
            if os.path.splitext(file_name)[1] == ".json":
                yield os.path.join(root, file_name)


class ConnectionManager:
    """Entry point for connection operations in one project and region."""

    def __init__(self, ctx: ClientContext, http: Optional[HttpClient] = None,
                 iam: Optional[IAMClient] = None, secret_store: Optional[GCPSecretClient] = None,
                 kms_client: Optional[KMSClient] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.ctx = ctx
        self.http = http or HttpClient(ctx)
        self.iam = iam or IAMClient(self.http)
        secret_store = secret_store or GCPSecretClient()
        self.resolver = SecretResolver(ctx, secret_store, kms_client)
        self.grantor = PermissionGrantor(self.iam, secret_store)
        self.transformer = DocumentTransformer(ctx, self.resolver, self.grantor, self.iam)
        self._sleep = sleep

    @property
    def base_url(self) -> str:
        return connections_url(self.ctx)

    def create(self, name: str, content: Union[str, bytes], service_account: str = "",
               service_account_project: str = "", encryption_key: str = "",
               grant_permission: bool = False, create_secret: bool = False, wait: bool = False,
               deadline: Optional[float] = None) -> Dict[str, Any]:
        """
        Create a connection from a connection file.

        Returns:
            The operation returned by the create call. With wait=True the call
            blocks until the operation finishes, but still returns this initial
            operation; fetch the connection to see its final state.
        """
        body = self.transformer.build_create_request(
            content,
            service_account=service_account,
            service_account_project=service_account_project,
            encryption_key=encryption_key,
            grant_permission=grant_permission,
            create_secret=create_secret,
        )
        operation = self.http.request(self.base_url, body=body, params={"connectionId": name})

        if wait:
            with self.ctx.suppressed_output():
                wait_for_operation(self.get_operation, short_name(operation.get("name", "")),
                                   deadline=deadline, sleep=self._sleep)
        return operation

    def get_operation(self, operation_id: str) -> Dict[str, Any]:
        return self.http.request(f"{operations_url(self.ctx)}/{operation_id}")

    def wait(self, operation_id: str, deadline: Optional[float] = None) -> OperationState:
        with self.ctx.suppressed_output():
            return wait_for_operation(self.get_operation, operation_id, deadline=deadline,
                                      sleep=self._sleep)

    def get(self, name: str, view: str = "", minimal: bool = False,
            overrides: bool = False) -> Dict[str, Any]:
        """
        Fetch a connection.

        Args:
            name: Connection id
            view: BASIC or FULL, server default when empty
            minimal: Return the connection in connection-file form (connectorDetails
                instead of name and connectorVersion)
            overrides: With minimal, also turn secret versions into secretName
                details and first-party project ids into $PROJECT_ID$
        """
        params = {"view": view} if view else None
        url = f"{self.base_url}/{name}"
        if not minimal:
            return self.http.request(url, params=params)

        with self.ctx.suppressed_output():
            data = self.http.request(url, params=params)
        connection = Connection.from_dict(data)
        if overrides:
            payload = redact_for_export(connection)
        else:
            payload = minimize(connection).to_dict()
        self.http.print_payload(payload)
        return payload

    def list(self, page_size: int = -1, page_token: str = "", filter: str = "",
             order_by: str = "") -> Dict[str, Any]:
        return self.http.request(self.base_url,
                                 params=paging_params(page_size, page_token, filter, order_by))

    def patch(self, name: str, content: Union[str, bytes],
              update_mask: Sequence[str] = ()) -> Dict[str, Any]:
        # parsed only to reject malformed documents before sending
        ConnectionRequest.from_json(content)
        params = {"updateMask": ",".join(update_mask)} if update_mask else None
        return self.http.request(f"{self.base_url}/{name}", body=content, method="PATCH", params=params)

    def delete(self, name: str) -> Dict[str, Any]:
        return self.http.request(f"{self.base_url}/{name}", method="DELETE")

    def get_iam_policy(self, name: str) -> Dict[str, Any]:
        return self.http.request(f"{self.base_url}/{name}:getIamPolicy")

    def _exists(self, name: str) -> bool:
        try:
            self.get(name)
        except TransportError:
            return False
        return True

    def import_connections(self, folder: str, create_secret: bool = False, wait: bool = False) -> None:
        """
        Create a connection for every .json file under folder, named after the file.

        Connections that already exist are skipped. Failures of individual files,
        including files that cannot be read, are collected and raised together
        once every file has been tried. Subfolders that cannot be listed are
        skipped. A root folder that cannot be listed ends the import with a
        warning unless policy.IGNORE_IMPORT_WALK_ERRORS is off.

        Raises:
            ImportFailedError: If any connection could not be created
        """
        errors: List[str] = []
        with self.ctx.suppressed_output():
            try:
                for path in _json_files(folder):
                    name = os.path.splitext(os.path.basename(path))[0]
                    try:
                        self._import_file(name, path, create_secret, wait)
                    except (ConnectionsError, OSError) as e:
                        errors.append(f"{name}: {e}")
            except OSError as e:
                if not policy.IGNORE_IMPORT_WALK_ERRORS:
                    raise
                logger.warning(f"connection folder could not be read, stopping import: {e}")

        if errors:
            raise ImportFailedError(errors)

    def _import_file(self, name: str, path: str, create_secret: bool, wait: bool) -> None:
        with open(path, 'rb') as f:
            content = f.read()

        if self._exists(name):
            logger.info(f"connection {name} already exists, skipping creation")
            return

        logger.info(f"creating connection {name}")
        self.create(name, content, create_secret=create_secret, wait=wait)

    def export_connections(self, folder: str, force: bool = False) -> List[str]:
        """
        Write each connection in the region to {folder}/{connection id}.json.

        Returns:
            Paths of the written files

        Raises:
            FileExistsError: If a target file exists and force is False
        """
        with self.ctx.suppressed_output():
            data = self.list(page_size=MAX_PAGE_SIZE)

        items = data.get("connections", [])
        if not items:
            return []

        os.makedirs(folder, exist_ok=True)
        written = []
        for item in items:
            connection = Connection.from_dict(item)
            file_name = short_name(connection.name or "") + ".json"
            minimize(connection)
            path = os.path.join(folder, file_name)
            if os.path.exists(path) and not force:
                raise FileExistsError(f"{path} already exists, use --force to overwrite")
            with open(path, 'w') as f:
                json.dump(connection.to_dict(), f, indent=2)
            logger.info(f"Downloaded {file_name}")
            written.append(path)
        return written
