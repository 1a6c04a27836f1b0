"""Models describing a set of Kubernetes manifests deployed together."""

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field


class Kind(str, Enum):
    """Kubernetes object kinds handled by kubundle."""

    SECRET = "Secret"
    PERSISTENT_VOLUME = "PersistentVolume"
    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    DEPLOYMENT = "Deployment"
    SERVICE = "Service"

    @property
    def api_version(self) -> str:
        """API group and version of the kind."""
        return "apps/v1" if self is Kind.DEPLOYMENT else "v1"

    @property
    def namespaced(self) -> bool:
        """Return False for cluster scoped kinds."""
        return self is not Kind.PERSISTENT_VOLUME

    @property
    def suffix(self) -> str:
        """Suffix used when writing the manifest to a file."""
        return FILE_SUFFIXES[self]


FILE_SUFFIXES = {
    Kind.SECRET: "secret",
    Kind.PERSISTENT_VOLUME: "pv",
    Kind.PERSISTENT_VOLUME_CLAIM: "pvc",
    Kind.DEPLOYMENT: "deployment",
    Kind.SERVICE: "service",
}

APPLY_ORDER = [
    Kind.SECRET,
    Kind.PERSISTENT_VOLUME,
    Kind.PERSISTENT_VOLUME_CLAIM,
    Kind.DEPLOYMENT,
    Kind.SERVICE,
]


def get_kind(manifest: dict[str, Any]) -> Kind | None:
    """Return the Kind of a manifest or None if not supported."""
    try:
        return Kind(manifest.get("kind"))
    except ValueError:
        return None


def get_name(manifest: dict[str, Any]) -> str | None:
    """Return the metadata name of a manifest."""
    metadata = manifest.get("metadata") or {}
    return metadata.get("name")


class Bundle(BaseModel):
    """Ordered collection of manifests belonging to the same service."""

    name: Annotated[str, Field(description="Bundle name, usually the service name")]
    manifests: Annotated[
        list[dict[str, Any]],
        Field(default_factory=list, description="Kubernetes manifests"),
    ]

    def by_kind(self, kind: Kind) -> list[dict[str, Any]]:
        """Return the manifests of the given kind, in bundle order."""
        return [i for i in self.manifests if i.get("kind") == kind.value]

    def get(self, kind: Kind, name: str) -> dict[str, Any] | None:
        """Return the manifest with the given kind and name."""
        for manifest in self.by_kind(kind):
            if get_name(manifest) == name:
                return manifest
        return None

    def index(self, kind: Kind, name: str) -> int | None:
        """Return the position of a manifest in the bundle."""
        for i, manifest in enumerate(self.manifests):
            if manifest.get("kind") == kind.value and get_name(manifest) == name:
                return i
        return None

    def sorted(self) -> "Bundle":
        """Return a copy with the manifests in apply order.

        The sort is stable and unsupported kinds are placed at the end.
        """

        def position(manifest: dict[str, Any]) -> int:
            kind = get_kind(manifest)
            return APPLY_ORDER.index(kind) if kind is not None else len(APPLY_ORDER)

        return Bundle(name=self.name, manifests=sorted(self.manifests, key=position))
