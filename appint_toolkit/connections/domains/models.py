"""Domain models for connection documents.

Each model reads and writes the Connectors API JSON layout with from_dict/to_dict.
Empty fields are left out of the output so that exported files stay
compatible with documents written by earlier releases.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .errors import DecodeError, ValidationError


def _list_of(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """List of JSON objects under key; every entry must be an object."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"'{key}' must be a list")
    for index, entry in enumerate(value):
        if not isinstance(entry, dict):
            raise ValidationError(f"'{key}' entry {index} must be an object, got {entry!r}")
    return value


def _dict_of(data: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError(f"'{key}' must be an object")
    return value


def load_json_document(content: Union[str, bytes]) -> Dict[str, Any]:
    """Parse a JSON object, raising DecodeError for anything else."""
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"Invalid connection JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError("Connection JSON must be an object")
    return data


@dataclass
class Secret:
    """Reference to a stored Secret Manager secret version."""
    secret_version: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Secret":
        return cls(secret_version=data.get("secretVersion", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"secretVersion": self.secret_version} if self.secret_version else {}


@dataclass
class SecretDetails:
    """Secret that still has to be created from a local file."""
    secret_name: str = ""
    reference: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecretDetails":
        return cls(secret_name=data.get("secretName", ""), reference=data.get("reference", ""))

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        if self.secret_name:
            out["secretName"] = self.secret_name
        if self.reference:
            out["reference"] = self.reference
        return out


SecretRef = Union[Secret, SecretDetails]


def _read_secret_ref(data: Dict[str, Any], value_key: str, details_key: str) -> Optional[SecretRef]:
    value = _dict_of(data, value_key)
    details = _dict_of(data, details_key)
    if value is not None and details is not None:
        raise ValidationError(f"Only one of '{value_key}' or '{details_key}' may be set")
    if value is not None:
        return Secret.from_dict(value)
    if details is not None:
        return SecretDetails.from_dict(details)
    return None


def _write_secret_ref(out: Dict[str, Any], ref: Optional[SecretRef], value_key: str, details_key: str) -> None:
    if isinstance(ref, Secret):
        out[value_key] = ref.to_dict()
    elif isinstance(ref, SecretDetails):
        out[details_key] = ref.to_dict()


def _check_secret_ref(ref: Any, field_name: str) -> None:
    if ref is not None and not isinstance(ref, (Secret, SecretDetails)):
        raise ValidationError(f"'{field_name}' must be a Secret or SecretDetails")


ConfigValue = Union[bool, int, str, Secret, SecretDetails]


@dataclass
class ConfigVariable:
    """A key holding exactly one typed value."""
    key: str
    value: ConfigValue

    def __post_init__(self):
        if not isinstance(self.value, (bool, int, str, Secret, SecretDetails)):
            raise ValidationError(f"Config variable '{self.key}' has no supported value")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigVariable":
        key = data.get("key", "")
        present = [k for k in ("intValue", "boolValue", "stringValue", "secretValue", "secretDetails")
                   if data.get(k) is not None]
        if len(present) != 1:
            raise ValidationError(
                f"Config variable '{key}' must set exactly one value, found {len(present)}"
            )
        kind = present[0]
        raw = data[kind]
        if kind == "intValue":
            try:
                value = int(raw)
            except (TypeError, ValueError):
                raise ValidationError(f"Config variable '{key}' has a non-integer intValue: {raw}")
        elif kind == "boolValue":
            value = bool(raw)
        elif kind == "stringValue":
            value = str(raw)
        elif not isinstance(raw, dict):
            raise ValidationError(f"Config variable '{key}' {kind} must be an object")
        elif kind == "secretValue":
            value = Secret.from_dict(raw)
        else:
            value = SecretDetails.from_dict(raw)
        return cls(key=key, value=value)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.key:
            out["key"] = self.key
        # bool is a subclass of int, check it first
        if isinstance(self.value, bool):
            out["boolValue"] = self.value
        elif isinstance(self.value, int):
            # int64 values travel as strings in the API JSON
            out["intValue"] = str(self.value)
        elif isinstance(self.value, str):
            out["stringValue"] = self.value
        elif isinstance(self.value, Secret):
            out["secretValue"] = self.value.to_dict()
        else:
            out["secretDetails"] = self.value.to_dict()
        return out


def _read_config_variables(data: Dict[str, Any], key: str) -> List[ConfigVariable]:
    return [ConfigVariable.from_dict(v) for v in _list_of(data, key)]


@dataclass
class JwtClaims:
    issuer: str = ""
    subject: str = ""
    audience: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JwtClaims":
        return cls(
            issuer=data.get("issuer", ""),
            subject=data.get("subject", ""),
            audience=data.get("audience", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in (("issuer", self.issuer), ("subject", self.subject),
                                  ("audience", self.audience)) if v}


@dataclass
class UserPassword:
    username: str = ""
    password: Optional[SecretRef] = None

    def __post_init__(self):
        _check_secret_ref(self.password, "password")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPassword":
        return cls(
            username=data.get("username", ""),
            password=_read_secret_ref(data, "password", "passwordDetails"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.username:
            out["username"] = self.username
        _write_secret_ref(out, self.password, "password", "passwordDetails")
        return out


@dataclass
class Oauth2JwtBearer:
    client_key: Optional[SecretRef] = None
    jwt_claims: JwtClaims = field(default_factory=JwtClaims)

    def __post_init__(self):
        _check_secret_ref(self.client_key, "clientKey")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Oauth2JwtBearer":
        return cls(
            client_key=_read_secret_ref(data, "clientKey", "clientKeyDetails"),
            jwt_claims=JwtClaims.from_dict(_dict_of(data, "jwtClaims") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        _write_secret_ref(out, self.client_key, "clientKey", "clientKeyDetails")
        claims = self.jwt_claims.to_dict()
        if claims:
            out["jwtClaims"] = claims
        return out


@dataclass
class Oauth2ClientCredentials:
    client_id: str = ""
    client_secret: Optional[SecretRef] = None

    def __post_init__(self):
        _check_secret_ref(self.client_secret, "clientSecret")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Oauth2ClientCredentials":
        return cls(
            client_id=data.get("clientId", ""),
            client_secret=_read_secret_ref(data, "clientSecret", "clientSecretDetails"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.client_id:
            out["clientId"] = self.client_id
        _write_secret_ref(out, self.client_secret, "clientSecret", "clientSecretDetails")
        return out


@dataclass
class SshPublicKey:
    username: str = ""
    password: Optional[SecretRef] = None
    ssh_client_cert: Optional[SecretRef] = None
    cert_type: str = ""
    ssl_client_cert_pass: Optional[SecretRef] = None

    def __post_init__(self):
        _check_secret_ref(self.password, "password")
        _check_secret_ref(self.ssh_client_cert, "sshClientCert")
        _check_secret_ref(self.ssl_client_cert_pass, "sslClientCertPass")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SshPublicKey":
        return cls(
            username=data.get("username", ""),
            password=_read_secret_ref(data, "password", "passwordDetails"),
            ssh_client_cert=_read_secret_ref(data, "sshClientCert", "sshClientCertDetails"),
            cert_type=data.get("certType", ""),
            ssl_client_cert_pass=_read_secret_ref(data, "sslClientCertPass", "sslClientCertPassDetails"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.username:
            out["username"] = self.username
        _write_secret_ref(out, self.password, "password", "passwordDetails")
        _write_secret_ref(out, self.ssh_client_cert, "sshClientCert", "sshClientCertDetails")
        if self.cert_type:
            out["certType"] = self.cert_type
        _write_secret_ref(out, self.ssl_client_cert_pass, "sslClientCertPass", "sslClientCertPassDetails")
        return out


AuthPayload = Union[UserPassword, Oauth2JwtBearer, Oauth2ClientCredentials, SshPublicKey]

USER_PASSWORD = "USER_PASSWORD"
OAUTH2_JWT_BEARER = "OAUTH2_JWT_BEARER"
OAUTH2_CLIENT_CREDENTIALS = "OAUTH2_CLIENT_CREDENTIALS"
SSH_PUBLIC_KEY = "SSH_PUBLIC_KEY"
OAUTH2_AUTH_CODE_FLOW = "OAUTH2_AUTH_CODE_FLOW"

# authType -> (payload JSON key, payload model)
AUTH_PAYLOADS = {
    USER_PASSWORD: ("userPassword", UserPassword),
    OAUTH2_JWT_BEARER: ("oauth2JwtBearer", Oauth2JwtBearer),
    OAUTH2_CLIENT_CREDENTIALS: ("oauth2ClientCredentials", Oauth2ClientCredentials),
    SSH_PUBLIC_KEY: ("sshPublicKey", SshPublicKey),
}


@dataclass
class AuthConfig:
    """Authentication block, tagged by auth_type.

    payload holds the model matching auth_type. Payloads without a model here
    (for example oauth2AuthCodeFlow) are kept verbatim in extra.
    """
    auth_type: str = ""
    payload: Optional[AuthPayload] = None
    additional_variables: List[ConfigVariable] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.payload is None:
            return
        expected = AUTH_PAYLOADS.get(self.auth_type)
        if expected is None or not isinstance(self.payload, expected[1]):
            raise ValidationError(
                f"Auth payload {type(self.payload).__name__} does not match authType '{self.auth_type}'"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthConfig":
        auth_type = data.get("authType", "")
        payload = None
        extra = {}
        payload_keys = {key: (name, model) for name, (key, model) in AUTH_PAYLOADS.items()}
        for key, value in data.items():
            if key in ("authType", "additionalVariables"):
                continue
            if key in payload_keys:
                name, model = payload_keys[key]
                if name != auth_type:
                    raise ValidationError(f"'{key}' cannot be set when authType is '{auth_type}'")
                payload = model.from_dict(_dict_of(data, key))
            else:
                extra[key] = value
        return cls(
            auth_type=auth_type,
            payload=payload,
            additional_variables=_read_config_variables(data, "additionalVariables"),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.auth_type:
            out["authType"] = self.auth_type
        if self.payload is not None:
            out[AUTH_PAYLOADS[self.auth_type][0]] = self.payload.to_dict()
        if self.additional_variables:
            out["additionalVariables"] = [v.to_dict() for v in self.additional_variables]
        out.update(self.extra)
        return out


@dataclass
class ConnectorDetails:
    name: str = ""
    provider: str = ""
    version: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectorDetails":
        version = data.get("version", 0)
        if isinstance(version, bool) or not isinstance(version, int):
            raise ValidationError("connectorDetails.version must be an integer")
        return cls(name=data.get("name", ""), provider=data.get("provider", ""), version=version)

    def validate(self) -> None:
        if not self.name or not self.provider or self.version < 0:
            raise ValidationError(
                "connectorDetails name, provider and version must be set "
                "(name and provider non-empty, version >= 0)"
            )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.name:
            out["name"] = self.name
        if self.provider:
            out["provider"] = self.provider
        if self.version:
            out["version"] = self.version
        return out


@dataclass
class Destination:
    port: int = 0
    service_attachment: str = ""
    host: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Destination":
        port = data.get("port", 0)
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise ValidationError(f"Destination port must be an integer: {port!r}")
        return cls(
            port=port,
            service_attachment=data.get("serviceAttachment", ""),
            host=data.get("host", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.port:
            out["port"] = self.port
        if self.service_attachment:
            out["serviceAttachment"] = self.service_attachment
        if self.host:
            out["host"] = self.host
        return out


@dataclass
class DestinationConfig:
    key: str = ""
    destinations: List[Destination] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DestinationConfig":
        return cls(
            key=data.get("key", ""),
            destinations=[Destination.from_dict(d) for d in _list_of(data, "destinations")],
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.key:
            out["key"] = self.key
        if self.destinations:
            out["destinations"] = [d.to_dict() for d in self.destinations]
        return out


def _read_destination_configs(data: Dict[str, Any]) -> List[DestinationConfig]:
    return [DestinationConfig.from_dict(d) for d in _list_of(data, "destinationConfigs")]


def _read_auth_config(data: Dict[str, Any]) -> Optional[AuthConfig]:
    auth = _dict_of(data, "authConfig")
    return AuthConfig.from_dict(auth) if auth is not None else None


def _read_connector_details(data: Dict[str, Any]) -> Optional[ConnectorDetails]:
    details = _dict_of(data, "connectorDetails")
    return ConnectorDetails.from_dict(details) if details is not None else None


@dataclass
class ConnectionRequest:
    """Document sent to create or patch a connection."""
    labels: Optional[Dict[str, str]] = None
    description: Optional[str] = None
    connector_details: Optional[ConnectorDetails] = None
    connector_version: Optional[str] = None
    config_variables: List[ConfigVariable] = field(default_factory=list)
    lock_config: Optional[Dict[str, Any]] = None
    destination_configs: List[DestinationConfig] = field(default_factory=list)
    auth_config: Optional[AuthConfig] = None
    service_account: Optional[str] = None
    suspended: Optional[bool] = None
    node_config: Optional[Dict[str, Any]] = None

    @classmethod
    def from_json(cls, content: Union[str, bytes]) -> "ConnectionRequest":
        return cls.from_dict(load_json_document(content))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionRequest":
        return cls(
            labels=_dict_of(data, "labels"),
            description=data.get("description"),
            connector_details=_read_connector_details(data),
            connector_version=data.get("connectorVersion"),
            config_variables=_read_config_variables(data, "configVariables"),
            lock_config=_dict_of(data, "lockConfig"),
            destination_configs=_read_destination_configs(data),
            auth_config=_read_auth_config(data),
            service_account=data.get("serviceAccount"),
            suspended=data.get("suspended"),
            node_config=_dict_of(data, "nodeConfig"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.labels is not None:
            out["labels"] = self.labels
        if self.description is not None:
            out["description"] = self.description
        if self.connector_details is not None:
            out["connectorDetails"] = self.connector_details.to_dict()
        if self.connector_version is not None:
            out["connectorVersion"] = self.connector_version
        if self.config_variables:
            out["configVariables"] = [v.to_dict() for v in self.config_variables]
        if self.lock_config is not None:
            out["lockConfig"] = self.lock_config
        if self.destination_configs:
            out["destinationConfigs"] = [d.to_dict() for d in self.destination_configs]
        if self.auth_config is not None:
            out["authConfig"] = self.auth_config.to_dict()
        if self.service_account is not None:
            out["serviceAccount"] = self.service_account
        if self.suspended is not None:
            out["suspended"] = self.suspended
        if self.node_config is not None:
            out["nodeConfig"] = self.node_config
        return out


@dataclass
class Connection:
    """Connection as returned by the API, or as kept in an exported file."""
    name: Optional[str] = None
    description: str = ""
    connector_version: Optional[str] = None
    connector_details: Optional[ConnectorDetails] = None
    config_variables: List[ConfigVariable] = field(default_factory=list)
    auth_config: AuthConfig = field(default_factory=AuthConfig)
    destination_configs: List[DestinationConfig] = field(default_factory=list)
    suspended: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connection":
        return cls(
            name=data.get("name"),
            description=data.get("description", ""),
            connector_version=data.get("connectorVersion"),
            connector_details=_read_connector_details(data),
            config_variables=_read_config_variables(data, "configVariables"),
            auth_config=_read_auth_config(data) or AuthConfig(),
            destination_configs=_read_destination_configs(data),
            suspended=bool(data.get("suspended", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.name is not None:
            out["name"] = self.name
        if self.description:
            out["description"] = self.description
        if self.connector_version is not None:
            out["connectorVersion"] = self.connector_version
        if self.connector_details is not None:
            out["connectorDetails"] = self.connector_details.to_dict()
        if self.config_variables:
            out["configVariables"] = [v.to_dict() for v in self.config_variables]
        auth = self.auth_config.to_dict()
        if auth:
            out["authConfig"] = auth
        if self.destination_configs:
            out["destinationConfigs"] = [d.to_dict() for d in self.destination_configs]
        if self.suspended:
            out["suspended"] = self.suspended
        return out


@dataclass
class OperationStatus:
    code: int = 0
    message: str = ""


@dataclass
class Operation:
    """Long-running operation handle."""
    name: str = ""
    done: bool = False
    error: Optional[OperationStatus] = None
    response: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Operation":
        error = _dict_of(data, "error")
        return cls(
            name=data.get("name", ""),
            done=bool(data.get("done", False)),
            error=OperationStatus(code=error.get("code", 0), message=error.get("message", ""))
            if error is not None else None,
            response=_dict_of(data, "response"),
        )
