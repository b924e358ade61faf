"""Per-invocation settings shared by every connection component."""
import os
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from .config_loader import ConfigError, load_config
from .preferences import target_defaults

logger = logging.getLogger(__name__)


@dataclass
class ClientContext:
    """Active project, region, credentials and output mode for one CLI invocation."""
    project_id: str
    region: str
    token: Optional[str] = None
    print_response: bool = True

    @classmethod
    def from_sources(cls, project_id: Optional[str] = None, region: Optional[str] = None,
                     token: Optional[str] = None, print_response: bool = True) -> "ClientContext":
        """
        Build a context from explicit values, environment variables and the config file.

        Priority order for each setting:
        1. Explicit argument (CLI flag)
        2. Environment variable (GCP_PROJECT, GCP_REGION, APPINT_TOKEN)
        3. Saved default (appint config set-target)
        4. Config file (gcp.project_id, gcp.region), loaded only when still needed

        Raises:
            ConfigError: If project or region cannot be determined
        """
        project_id = project_id or os.getenv("GCP_PROJECT")
        region = region or os.getenv("GCP_REGION")
        token = token or os.getenv("APPINT_TOKEN")

        if not project_id or not region:
            saved_project, saved_region = target_defaults()
            project_id = project_id or saved_project
            region = region or saved_region

        if not project_id or not region:
            gcp: Dict[str, Any] = load_config()['gcp']
            project_id = project_id or gcp.get('project_id')
            region = region or gcp.get('region')

        if not project_id:
            raise ConfigError("Project ID not found. Pass --proj, set GCP_PROJECT, run appint config set-target or configure gcp.project_id")
        if not region:
            raise ConfigError("Region not found. Pass --reg, set GCP_REGION, run appint config set-target or configure gcp.region")

        logger.debug(f"Using project {project_id} in region {region}")
        return cls(project_id=project_id, region=region, token=token, print_response=print_response)

    @contextmanager
    def suppressed_output(self) -> Iterator["ClientContext"]:
        """Turn off response printing, restoring the previous setting on exit."""
        previous = self.print_response
        self.print_response = False
        try:
            yield self
        finally:
            self.print_response = previous
