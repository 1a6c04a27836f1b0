"""Models and schemas to organize and validate data retrieved from YAML files."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)

from kubundle.utils import (
    ENV_VAR_NAME,
    find_duplicates,
    is_dns1123_label,
    parse_storage,
)


def dns_label(v: str) -> str:
    """Verify the value is a valid DNS-1123 label."""
    if not is_dns1123_label(v):
        raise ValueError(f"'{v}' is not a valid DNS-1123 label")
    return v


def absolute_path(v: str) -> str:
    """Verify the value is an absolute path."""
    if not v.startswith("/"):
        raise ValueError(f"'{v}' is not an absolute path")
    return v


def storage_quantity(v: str) -> str:
    """Verify the value is a valid, positive, Kubernetes quantity."""
    try:
        amount = parse_storage(v)
    except ValueError as e:
        raise ValueError(f"'{v}' is not a valid quantity") from e
    if amount <= 0:
        raise ValueError(f"Storage size must be positive: {v}")
    return v


class AccessMode(str, Enum):
    """Persistent volume access modes."""

    READ_WRITE_ONCE = "ReadWriteOnce"
    READ_ONLY_MANY = "ReadOnlyMany"
    READ_WRITE_MANY = "ReadWriteMany"
    READ_WRITE_ONCE_POD = "ReadWriteOncePod"


class ServiceType(str, Enum):
    """Kubernetes service types supported by the generator."""

    CLUSTER_IP = "ClusterIP"
    NODE_PORT = "NodePort"
    LOAD_BALANCER = "LoadBalancer"


class ServicePort(BaseModel):
    """Port exposed by the container and published by the service."""

    name: Annotated[
        str,
        Field(max_length=15, description="Port name, i.e. 'http'"),
        AfterValidator(dns_label),
    ]
    container_port: Annotated[
        int, Field(ge=1, le=65535, description="Port the container listens on")
    ]
    service_port: Annotated[
        int | None,
        Field(
            default=None,
            ge=1,
            le=65535,
            description="Port published by the service. Defaults to the container one",
        ),
    ]
    protocol: Annotated[
        Literal["TCP", "UDP", "SCTP"], Field(default="TCP", description="Protocol")
    ]

    @model_validator(mode="after")
    def default_service_port(self) -> "ServicePort":
        """Publish the container port when the service port is not set."""
        if self.service_port is None:
            self.service_port = self.container_port
        return self


class Credential(BaseModel):
    """Sensitive value stored in the service secret and injected as env variable.

    The value can be written in the file or read from an environment variable when
    the manifests are generated.
    """

    key: Annotated[
        str,
        Field(
            pattern=ENV_VAR_NAME.pattern,
            description="Secret key and name of the env variable in the container",
        ),
    ]
    value: Annotated[str | None, Field(default=None, description="Plain value")]
    env: Annotated[
        str | None,
        Field(
            default=None,
            description="Name of the local environment variable holding the value",
        ),
    ]

    @model_validator(mode="after")
    def value_or_env(self) -> "Credential":
        """Exactly one between value and env must be set."""
        if (self.value is None) == (self.env is None):
            raise ValueError(
                f"Credential {self.key} requires exactly one of 'value' or 'env'"
            )
        return self


class Storage(BaseModel):
    """Persistent storage of the service."""

    size: Annotated[
        str,
        Field(default="10Gi", description="Storage capacity, i.e. '10Gi'"),
        AfterValidator(storage_quantity),
    ]
    access_modes: Annotated[
        list[AccessMode],
        Field(
            default_factory=lambda: [AccessMode.READ_WRITE_ONCE],
            min_length=1,
            description="Volume access modes",
        ),
        AfterValidator(find_duplicates),
    ]
    reclaim_policy: Annotated[
        Literal["Retain", "Delete", "Recycle"],
        Field(default="Retain", description="Persistent volume reclaim policy"),
    ]
    mount_path: Annotated[
        str,
        Field(description="Path where the volume is mounted in the container"),
        AfterValidator(absolute_path),
    ]
    host_path: Annotated[
        str | None,
        Field(
            default=None,
            description="Node directory backing the persistent volume. Defaults to "
            "/mnt/data/<service name>",
        ),
    ]
    storage_class_name: Annotated[
        str | None,
        Field(default=None, description="Storage class of the volume and the claim"),
    ]
    create_volume: Annotated[
        bool,
        Field(
            default=True,
            description="Generate the persistent volume. When false the claim relies "
            "on dynamic provisioning",
        ),
    ]

    @field_validator("host_path")
    @classmethod
    def validate_host_path(cls, v: str | None) -> str | None:
        """Host path, when given, must be absolute."""
        if v is not None:
            absolute_path(v)
        return v


class StatefulService(BaseModel):
    """Single replica service backed by a persistent volume."""

    name: Annotated[
        str,
        Field(
            max_length=55, description="Service name, used as prefix for all objects"
        ),
        AfterValidator(dns_label),
    ]
    image: Annotated[str, Field(min_length=1, description="Container image")]
    replicas: Annotated[
        int, Field(default=1, ge=0, le=1, description="Number of replicas (0 or 1)")
    ]
    ports: Annotated[
        list[ServicePort], Field(min_length=1, description="Exposed ports")
    ]
    credentials: Annotated[
        list[Credential],
        Field(default_factory=list, description="Values stored in the secret"),
    ]
    env: Annotated[
        dict[str, str],
        Field(default_factory=dict, description="Plain environment variables"),
    ]
    storage: Annotated[Storage, Field(description="Persistent storage")]
    service_type: Annotated[
        ServiceType,
        Field(default=ServiceType.LOAD_BALANCER, description="Service type"),
    ]
    labels: Annotated[
        dict[str, str],
        Field(default_factory=dict, description="Additional labels for all objects"),
    ]
    strategy: Annotated[
        Literal["Recreate", "RollingUpdate"] | None,
        Field(default=None, description="Deployment update strategy"),
    ]
    namespace: Annotated[
        str | None,
        Field(default=None, description="Target namespace"),
    ]

    @field_validator("ports")
    @classmethod
    def validate_ports(cls, v: list[ServicePort]) -> list[ServicePort]:
        """Verify there are no duplicate port names or numbers."""
        find_duplicates(v, "name")
        find_duplicates(v, "container_port")
        find_duplicates(v, "service_port")
        return v

    @field_validator("credentials")
    @classmethod
    def validate_credentials(cls, v: list[Credential]) -> list[Credential]:
        """Verify there are no duplicate credential keys."""
        find_duplicates(v, "key")
        return v

    @field_validator("labels")
    @classmethod
    def validate_labels(cls, v: dict[str, str]) -> dict[str, str]:
        """The 'app' label is reserved to the pod selector."""
        if "app" in v:
            raise ValueError("Label 'app' is reserved")
        return v

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str | None) -> str | None:
        """Namespace, when given, must be a DNS-1123 label."""
        if v is not None:
            dns_label(v)
        return v

    @model_validator(mode="after")
    def check_env_clashes(self) -> "StatefulService":
        """A variable can't be both a plain env variable and a credential."""
        clashes = sorted({i.key for i in self.credentials}.intersection(self.env))
        if clashes:
            raise ValueError(
                f"Variables defined both as env and credentials: {','.join(clashes)}"
            )
        return self

    @model_validator(mode="after")
    def default_host_path(self) -> "StatefulService":
        """Back the volume with /mnt/data/<name> when no host path is given."""
        if self.storage.create_volume and self.storage.host_path is None:
            self.storage.host_path = f"/mnt/data/{self.name}"
        return self

    @property
    def secret_name(self) -> str:
        return f"{self.name}-secret"

    @property
    def volume_name(self) -> str:
        return f"{self.name}-pv"

    @property
    def claim_name(self) -> str:
        return f"{self.name}-pvc"

    @property
    def service_name(self) -> str:
        return f"{self.name}-service"

    @property
    def pod_volume_name(self) -> str:
        return f"{self.name}-volume"

    @property
    def selector(self) -> dict[str, str]:
        return {"app": self.name}


class YamlConfig(BaseModel):
    """Model to collect all the services written in a YAML file."""

    services: Annotated[
        list[StatefulService], Field(description="Services to deploy")
    ]

    @field_validator("services")
    @classmethod
    def validate_services(cls, v: list[StatefulService]) -> list[StatefulService]:
        """Verify there are no duplicate service names."""
        find_duplicates(v, "name")
        return v
