"""Parsing and formatting of Google Cloud resource names used by connections.

Resource names are "/"-delimited and positional. The positions below are fixed
by the Connectors API resource grammar:

    projects/{project}/locations/global/providers/{provider}/connectors/{connector}/versions/{version}
    projects/{project}/secrets/{secret}/versions/{version}
    projects/{project}/locations/{region}/connections/{connection}
"""
from dataclasses import dataclass

from .errors import MalformedSecretPathError, ValidationError

CONNECTOR_VERSION_TEMPLATE = (
    "projects/{project}/locations/global/providers/{provider}"
    "/connectors/{connector}/versions/{version}"
)
SECRET_VERSION_TEMPLATE = "projects/{project}/secrets/{secret}/versions/{version}"

# segment positions in a connector version path
_PROVIDER_INDEX = 5
_CONNECTOR_INDEX = 7
_VERSION_INDEX = 9

# segment position of the secret name in a secret version path
_SECRET_INDEX = 3


@dataclass
class ConnectorVersionName:
    """Decomposed connector version resource name."""
    project: str
    provider: str
    connector: str
    version: int

    @classmethod
    def parse(cls, path: str) -> "ConnectorVersionName":
        parts = path.split("/")
        if len(parts) <= _VERSION_INDEX:
            raise ValidationError(f"Malformed connector version: {path}")
        try:
            version = int(parts[_VERSION_INDEX])
        except ValueError:
            raise ValidationError(f"Connector version is not a number in: {path}")
        return cls(
            project=parts[1],
            provider=parts[_PROVIDER_INDEX],
            connector=parts[_CONNECTOR_INDEX],
            version=version,
        )

    def __str__(self) -> str:
        return CONNECTOR_VERSION_TEMPLATE.format(
            project=self.project,
            provider=self.provider,
            connector=self.connector,
            version=self.version,
        )


@dataclass
class SecretVersionName:
    """Decomposed Secret Manager secret version resource name."""
    project: str
    secret: str
    version: str

    @classmethod
    def parse(cls, path: str) -> "SecretVersionName":
        parts = path.split("/")
        if len(parts) <= _SECRET_INDEX:
            raise MalformedSecretPathError(
                f"Secret version must look like projects/*/secrets/*/versions/*, got: {path}"
            )
        version = parts[5] if len(parts) > 5 else ""
        return cls(project=parts[1], secret=parts[_SECRET_INDEX], version=version)

    def __str__(self) -> str:
        return SECRET_VERSION_TEMPLATE.format(
            project=self.project, secret=self.secret, version=self.version
        )


def short_name(name: str) -> str:
    """Return the last segment of a resource name (connection id, operation id)."""
    return name[name.rfind("/") + 1:]
