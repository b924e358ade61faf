"""List calls for resources connections refer to."""
import logging
from typing import Any, Dict

from ..domains.http_client import HttpClient, endpoint_attachments_url, sfdc_instances_url

logger = logging.getLogger(__name__)


def paging_params(page_size: int = -1, page_token: str = "", filter: str = "",
                  order_by: str = "") -> Dict[str, str]:
    """Query parameters for a list call. page_size -1 leaves paging to the server."""
    params = {}
    if page_size != -1:
        params["pageSize"] = str(page_size)
    if page_token:
        params["pageToken"] = page_token
    if filter:
        params["filter"] = filter
    if order_by:
        params["orderBy"] = order_by
    return params


def list_endpoint_attachments(http: HttpClient, page_size: int = -1, page_token: str = "",
                              filter: str = "", order_by: str = "") -> Dict[str, Any]:
    return http.request(endpoint_attachments_url(http.ctx),
                        params=paging_params(page_size, page_token, filter, order_by))


def list_sfdc_instances(http: HttpClient) -> Dict[str, Any]:
    return http.request(sfdc_instances_url(http.ctx))
