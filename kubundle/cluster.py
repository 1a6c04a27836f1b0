"""Kubernetes client object to apply bundles and inspect the deployed services."""

import json
import time
from logging import Logger
from typing import Any, Callable

import urllib3
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from kubundle.config import Settings
from kubundle.exceptions import AbortProcedureError, ApplyError
from kubundle.models.bundle import Bundle, Kind, get_kind, get_name
from kubundle.models.report import ApplyResult
from kubundle.validator import diff_manifest

DEFAULT_NAMESPACE = "default"


class KubernetesApplier:
    """Apply manifests to a cluster the way 'kubectl apply' does.

    Objects are read before being written: missing objects are created, objects
    differing from the desired state are patched and the others are left untouched.
    Re-applying the same bundle is therefore a no-op.
    """

    def __init__(self, *, settings: Settings, logger: Logger) -> None:
        self.logger = logger
        self.namespace = settings.NAMESPACE or DEFAULT_NAMESPACE
        self.timeout = settings.REQUEST_TIMEOUT
        self.dry_run = "All" if settings.APPLY_DRY_RUN else None
        self.wait_timeout = settings.ENDPOINT_WAIT_TIMEOUT
        self.poll_interval = settings.ENDPOINT_POLL_INTERVAL

        # Connection is only defined, not yet opened
        self.client = self.create_connection(settings)
        self.corev1 = client.CoreV1Api(self.client)
        self.appsv1 = client.AppsV1Api(self.client)

    def create_connection(self, settings: Settings) -> client.ApiClient:
        """Create an API client from the kubeconfig or the in-cluster configuration.

        Raises:
            AbortProcedureError if the configuration can't be loaded.

        """
        try:
            if settings.IN_CLUSTER:
                self.logger.info("Using in-cluster configuration")
                config.load_incluster_config()
                return client.ApiClient()
            kubeconfig = (
                str(settings.KUBECONFIG) if settings.KUBECONFIG is not None else None
            )
            msg = f"Using kubeconfig {kubeconfig or 'default'}, "
            msg += f"context {settings.KUBE_CONTEXT or 'current'}"
            self.logger.info(msg)
            return config.new_client_from_config(
                config_file=kubeconfig, context=settings.KUBE_CONTEXT
            )
        except config.ConfigException as e:
            msg = f"Invalid cluster configuration: {e}"
            self.logger.error(msg)
            raise AbortProcedureError(msg) from e

    def operations(
        self, kind: Kind
    ) -> tuple[Callable[..., Any], Callable[..., Any], Callable[..., Any]]:
        """Return the read, create and patch API functions of a kind."""
        return {
            Kind.SECRET: (
                self.corev1.read_namespaced_secret,
                self.corev1.create_namespaced_secret,
                self.corev1.patch_namespaced_secret,
            ),
            Kind.PERSISTENT_VOLUME: (
                self.corev1.read_persistent_volume,
                self.corev1.create_persistent_volume,
                self.corev1.patch_persistent_volume,
            ),
            Kind.PERSISTENT_VOLUME_CLAIM: (
                self.corev1.read_namespaced_persistent_volume_claim,
                self.corev1.create_namespaced_persistent_volume_claim,
                self.corev1.patch_namespaced_persistent_volume_claim,
            ),
            Kind.DEPLOYMENT: (
                self.appsv1.read_namespaced_deployment,
                self.appsv1.create_namespaced_deployment,
                self.appsv1.patch_namespaced_deployment,
            ),
            Kind.SERVICE: (
                self.corev1.read_namespaced_service,
                self.corev1.create_namespaced_service,
                self.corev1.patch_namespaced_service,
            ),
        }[kind]

    def read_live(self, kind: Kind, name: str, namespace: str) -> dict[str, Any] | None:
        """Return the live object as a manifest dict or None if it does not exist."""
        read, _, _ = self.operations(kind)
        kwargs = {"namespace": namespace} if kind.namespaced else {}
        try:
            obj = read(name, _request_timeout=self.timeout, **kwargs)
        except ApiException as e:
            if e.status == 404:
                return None
            raise
        return self.client.sanitize_for_serialization(obj)

    def apply_manifest(self, manifest: dict[str, Any]) -> ApplyResult:
        """Create or update a single object.

        Args:
            manifest (dict): desired object.

        Returns:
            ApplyResult: the performed action.

        Raises:
            ApplyError if the kind is not supported, the API server rejects the
            object or the cluster is unreachable.

        """
        kind = get_kind(manifest)
        name = get_name(manifest)
        if kind is None:
            msg = f"Unsupported kind '{manifest.get('kind')}'"
            self.logger.error(msg)
            raise ApplyError(msg, kind=manifest.get("kind"), name=name)

        _, create, patch = self.operations(kind)
        namespace = manifest.get("metadata", {}).get("namespace") or self.namespace
        kwargs = {"_request_timeout": self.timeout, "dry_run": self.dry_run}
        if kind.namespaced:
            kwargs["namespace"] = namespace

        try:
            live = self.read_live(kind, name, namespace)
            if live is None:
                create(body=manifest, **kwargs)
                action = "created"
            else:
                diffs = diff_manifest(manifest, live)
                if len(diffs) == 0:
                    action = "unchanged"
                else:
                    self.logger.debug("%s/%s differs at %s", kind.value, name, diffs)
                    patch(name, body=manifest, **kwargs)
                    action = "configured"
        except ApiException as e:
            if e.status == 403:
                data = json.loads(e.body)
                msg = f"{kind.value}/{name}: {data['message']}"
            else:
                msg = f"{kind.value}/{name}: error occurred when applying: {e.reason}"
            self.logger.error(msg)
            raise ApplyError(msg, kind=kind.value, name=name) from e
        except urllib3.exceptions.MaxRetryError as e:
            msg = f"{kind.value}/{name}: {e.reason}"
            self.logger.error(msg)
            raise ApplyError(msg, kind=kind.value, name=name) from e

        result = ApplyResult(kind=kind.value, name=name, action=action)
        self.logger.info("%s", result)
        return result

    def apply_bundle(self, bundle: Bundle) -> list[ApplyResult]:
        """Apply all the manifests of a bundle in apply order.

        The procedure stops at the first failure since later objects depend on the
        previous ones.

        Raises:
            ApplyError forwarded from 'apply_manifest'.

        """
        msg = f"Applying bundle '{bundle.name}'"
        if self.dry_run:
            msg += " (dry run)"
        self.logger.info(msg)
        return [self.apply_manifest(i) for i in bundle.sorted().manifests]

    def get_endpoint(self, name: str, namespace: str | None = None) -> str | None:
        """Return '<address>:<port>' of a load balancer service.

        The address is the ingress IP (or hostname) assigned by the cloud provider and
        the port is the first service port. None while the address is pending.
        """
        service = self.corev1.read_namespaced_service(
            name, namespace or self.namespace, _request_timeout=self.timeout
        )
        ingress = (
            service.status.load_balancer.ingress
            if service.status and service.status.load_balancer
            else None
        )
        if not ingress:
            return None
        address = ingress[0].ip or ingress[0].hostname
        if address is None or not service.spec.ports:
            return None
        return f"{address}:{service.spec.ports[0].port}"

    def wait_for_endpoint(self, name: str, namespace: str | None = None) -> str | None:
        """Poll the service until the load balancer address is assigned.

        Returns:
            str | None: the endpoint or None if the timeout expired or the service
                can't be read.

        """
        deadline = time.monotonic() + self.wait_timeout
        while True:
            try:
                endpoint = self.get_endpoint(name, namespace)
            except ApiException as e:
                if e.status == 403:
                    data = json.loads(e.body)
                    msg = f"Service/{name}: {data['message']}"
                else:
                    msg = f"Service/{name}: error occurred when reading: {e.reason}"
                self.logger.error(msg)
                return None
            except urllib3.exceptions.MaxRetryError as e:
                self.logger.error("Service/%s: %s", name, e.reason)
                return None
            if endpoint is not None:
                return endpoint
            if time.monotonic() >= deadline:
                self.logger.warning("No external address assigned to service %s", name)
                return None
            self.logger.debug("Waiting for the external address of service %s", name)
            time.sleep(self.poll_interval)
