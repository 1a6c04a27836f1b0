"""Build the Kubernetes manifests of a stateful single replica service.

Objects are created using the kubernetes client models and then converted to the
plain dicts accepted by the API server (camelCase keys, no null values).
"""

from functools import lru_cache
from typing import Any

from kubernetes import client

from kubundle.models.bundle import Bundle, Kind
from kubundle.models.yml import Credential, StatefulService
from kubundle.utils import encode_secret_value, resolve_env_value


@lru_cache
def get_serializer() -> client.ApiClient:
    """Return the API client used only to serialize models."""
    return client.ApiClient()


def to_manifest(obj: Any) -> dict[str, Any]:
    """Convert a kubernetes client model into a manifest dict."""
    return get_serializer().sanitize_for_serialization(obj)


def credential_value(credential: Credential) -> str:
    """Return the plain value of a credential.

    Raises:
        MissingCredentialError if the value is read from an unset env variable.

    """
    if credential.env is not None:
        return resolve_env_value(credential.env)
    return credential.value


def object_meta(
    service: StatefulService, name: str, namespace: str | None
) -> client.V1ObjectMeta:
    """Metadata shared by all the objects of the service."""
    return client.V1ObjectMeta(
        name=name,
        namespace=namespace,
        labels={**service.labels, **service.selector},
    )


def build_secret(
    service: StatefulService, *, namespace: str | None = None
) -> dict[str, Any]:
    """Opaque secret with a base64 encoded entry for each credential."""
    secret = client.V1Secret(
        api_version=Kind.SECRET.api_version,
        kind=Kind.SECRET.value,
        metadata=object_meta(service, service.secret_name, namespace),
        type="Opaque",
        data={
            i.key: encode_secret_value(credential_value(i))
            for i in service.credentials
        },
    )
    return to_manifest(secret)


def build_persistent_volume(service: StatefulService) -> dict[str, Any]:
    """Host path persistent volume. It is cluster scoped, so it has no namespace."""
    storage = service.storage
    volume = client.V1PersistentVolume(
        api_version=Kind.PERSISTENT_VOLUME.api_version,
        kind=Kind.PERSISTENT_VOLUME.value,
        metadata=object_meta(service, service.volume_name, None),
        spec=client.V1PersistentVolumeSpec(
            capacity={"storage": storage.size},
            access_modes=[i.value for i in storage.access_modes],
            persistent_volume_reclaim_policy=storage.reclaim_policy,
            storage_class_name=storage.storage_class_name,
            host_path=client.V1HostPathVolumeSource(path=storage.host_path),
        ),
    )
    return to_manifest(volume)


def build_persistent_volume_claim(
    service: StatefulService, *, namespace: str | None = None
) -> dict[str, Any]:
    storage = service.storage
    claim = client.V1PersistentVolumeClaim(
        api_version=Kind.PERSISTENT_VOLUME_CLAIM.api_version,
        kind=Kind.PERSISTENT_VOLUME_CLAIM.value,
        metadata=object_meta(service, service.claim_name, namespace),
        spec=client.V1PersistentVolumeClaimSpec(
            access_modes=[i.value for i in storage.access_modes],
            storage_class_name=storage.storage_class_name,
            resources=client.V1VolumeResourceRequirements(
                requests={"storage": storage.size}
            ),
        ),
    )
    return to_manifest(claim)


def build_container(service: StatefulService) -> client.V1Container:
    """Single container reading credentials from the service secret."""
    env = [client.V1EnvVar(name=k, value=v) for k, v in service.env.items()]
    env += [
        client.V1EnvVar(
            name=i.key,
            value_from=client.V1EnvVarSource(
                secret_key_ref=client.V1SecretKeySelector(
                    name=service.secret_name, key=i.key
                )
            ),
        )
        for i in service.credentials
    ]
    return client.V1Container(
        name=service.name,
        image=service.image,
        ports=[
            client.V1ContainerPort(
                name=i.name, container_port=i.container_port, protocol=i.protocol
            )
            for i in service.ports
        ],
        env=env or None,
        volume_mounts=[
            client.V1VolumeMount(
                name=service.pod_volume_name, mount_path=service.storage.mount_path
            )
        ],
    )


def build_deployment(
    service: StatefulService, *, namespace: str | None = None
) -> dict[str, Any]:
    strategy = None
    if service.strategy is not None:
        strategy = client.V1DeploymentStrategy(type=service.strategy)
    claim = client.V1PersistentVolumeClaimVolumeSource(claim_name=service.claim_name)
    deployment = client.V1Deployment(
        api_version=Kind.DEPLOYMENT.api_version,
        kind=Kind.DEPLOYMENT.value,
        metadata=object_meta(service, service.name, namespace),
        spec=client.V1DeploymentSpec(
            replicas=service.replicas,
            selector=client.V1LabelSelector(match_labels=service.selector),
            strategy=strategy,
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(
                    labels={**service.labels, **service.selector}
                ),
                spec=client.V1PodSpec(
                    containers=[build_container(service)],
                    volumes=[
                        client.V1Volume(
                            name=service.pod_volume_name,
                            persistent_volume_claim=claim,
                        )
                    ],
                ),
            ),
        ),
    )
    return to_manifest(deployment)


def build_service(
    service: StatefulService, *, namespace: str | None = None
) -> dict[str, Any]:
    svc = client.V1Service(
        api_version=Kind.SERVICE.api_version,
        kind=Kind.SERVICE.value,
        metadata=object_meta(service, service.service_name, namespace),
        spec=client.V1ServiceSpec(
            type=service.service_type.value,
            selector=service.selector,
            ports=[
                client.V1ServicePort(
                    name=i.name,
                    port=i.service_port,
                    target_port=i.container_port,
                    protocol=i.protocol,
                )
                for i in service.ports
            ],
        ),
    )
    return to_manifest(svc)


def build_bundle(service: StatefulService, *, namespace: str | None = None) -> Bundle:
    """Generate all the manifests of a service in apply order.

    The namespace declared by the service takes precedence over the given one.
    The persistent volume is skipped when the storage relies on dynamic provisioning.

    Args:
        service (StatefulService): service description.
        namespace (str | None): default namespace.

    Returns:
        Bundle: the service manifests.

    Raises:
        MissingCredentialError if a credential value can't be resolved.

    """
    namespace = service.namespace or namespace
    manifests = [build_secret(service, namespace=namespace)]
    if service.storage.create_volume:
        manifests.append(build_persistent_volume(service))
    manifests += [
        build_persistent_volume_claim(service, namespace=namespace),
        build_deployment(service, namespace=namespace),
        build_service(service, namespace=namespace),
    ]
    return Bundle(name=service.name, manifests=manifests)
