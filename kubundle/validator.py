"""Well-formedness and referential consistency checks on a bundle of manifests.

Checks never raise: each problem is reported as an Issue so that a single run shows
all the inconsistencies of a bundle.
"""

from logging import Logger
from typing import Any

from kubundle.models.bundle import Bundle, Kind, get_kind, get_name
from kubundle.models.report import Issue, Severity
from kubundle.utils import (
    is_base64,
    is_dns1123_label,
    is_dns1123_subdomain,
    parse_storage,
)

DEFAULT_VOLUME_MODE = "Filesystem"
# Parents of quantity fields: PV capacity, container and claim resources
QUANTITY_PARENTS = (".capacity.", ".requests.", ".limits.")


def error(manifest: dict[str, Any], message: str) -> Issue:
    return Issue(
        severity=Severity.ERROR,
        kind=manifest.get("kind"),
        name=get_name(manifest),
        message=message,
    )


def warning(manifest: dict[str, Any], message: str) -> Issue:
    return Issue(
        severity=Severity.WARNING,
        kind=manifest.get("kind"),
        name=get_name(manifest),
        message=message,
    )


def dig(data: Any, *keys: str, default: Any = None) -> Any:
    """Walk nested dicts returning default when a key is missing or null."""
    for key in keys:
        if not isinstance(data, dict):
            return default
        data = data.get(key)
        if data is None:
            return default
    return data


def pod_spec(deployment: dict[str, Any]) -> dict[str, Any]:
    return dig(deployment, "spec", "template", "spec", default={})


def pod_labels(deployment: dict[str, Any]) -> dict[str, str]:
    return dig(deployment, "spec", "template", "metadata", "labels", default={})


def containers(deployment: dict[str, Any]) -> list[dict[str, Any]]:
    spec = pod_spec(deployment)
    return [*(spec.get("initContainers") or []), *(spec.get("containers") or [])]


def check_well_formed(bundle: Bundle) -> list[Issue]:
    """Verify mandatory fields, supported kinds, names and duplicates."""
    issues = []
    seen = set()
    for manifest in bundle.manifests:
        for field in ("apiVersion", "kind"):
            if not manifest.get(field):
                issues.append(error(manifest, f"Missing '{field}'"))
        name = get_name(manifest)
        if not name:
            issues.append(error(manifest, "Missing 'metadata.name'"))
        kind = get_kind(manifest)
        if kind is None:
            if manifest.get("kind"):
                issues.append(
                    warning(manifest, f"Unsupported kind '{manifest['kind']}'")
                )
            continue
        if manifest.get("apiVersion") and manifest["apiVersion"] != kind.api_version:
            msg = f"Invalid apiVersion '{manifest['apiVersion']}', "
            msg += f"expected '{kind.api_version}'"
            issues.append(error(manifest, msg))
        if not name:
            continue
        valid = is_dns1123_label if kind == Kind.SERVICE else is_dns1123_subdomain
        if not valid(name):
            issues.append(error(manifest, f"Invalid object name '{name}'"))
        namespace = dig(manifest, "metadata", "namespace")
        if namespace is not None and not kind.namespaced:
            issues.append(warning(manifest, "Cluster scoped object has a namespace"))
        if (kind, namespace, name) in seen:
            issues.append(error(manifest, "Duplicated object"))
        seen.add((kind, namespace, name))
    return issues


def check_secret_data(bundle: Bundle) -> list[Issue]:
    """Values in the 'data' field of a secret must be base64 encoded."""
    issues = []
    for secret in bundle.by_kind(Kind.SECRET):
        for key, value in (secret.get("data") or {}).items():
            if not is_base64(value):
                issues.append(error(secret, f"Value of key '{key}' is not base64"))
    return issues


def secret_keys(secret: dict[str, Any]) -> set[str]:
    return {*(secret.get("data") or {}), *(secret.get("stringData") or {})}


def check_secret_refs(bundle: Bundle) -> list[Issue]:
    """Every secret referenced by a deployment must be in the bundle with the key."""
    issues = []
    for deployment in bundle.by_kind(Kind.DEPLOYMENT):
        for container in containers(deployment):
            for env in container.get("env") or []:
                ref = dig(env, "valueFrom", "secretKeyRef")
                if ref is None or ref.get("optional"):
                    continue
                secret = bundle.get(Kind.SECRET, ref.get("name"))
                if secret is None:
                    msg = f"Env variable '{env.get('name')}' references missing "
                    msg += f"secret '{ref.get('name')}'"
                    issues.append(error(deployment, msg))
                elif ref.get("key") not in secret_keys(secret):
                    msg = f"Env variable '{env.get('name')}' references missing key "
                    msg += f"'{ref.get('key')}' of secret '{ref.get('name')}'"
                    issues.append(error(deployment, msg))
            for env_from in container.get("envFrom") or []:
                ref = env_from.get("secretRef")
                if ref is None or ref.get("optional"):
                    continue
                if bundle.get(Kind.SECRET, ref.get("name")) is None:
                    msg = f"envFrom references missing secret '{ref.get('name')}'"
                    issues.append(error(deployment, msg))
    return issues


def check_volume_refs(bundle: Bundle) -> list[Issue]:
    """Volume mounts must match pod volumes and claims must be in the bundle."""
    issues = []
    for deployment in bundle.by_kind(Kind.DEPLOYMENT):
        volumes = pod_spec(deployment).get("volumes") or []
        names = {i.get("name") for i in volumes}
        for container in containers(deployment):
            for mount in container.get("volumeMounts") or []:
                if mount.get("name") not in names:
                    msg = f"Volume mount '{mount.get('name')}' of container "
                    msg += f"'{container.get('name')}' has no matching volume"
                    issues.append(error(deployment, msg))
        for volume in volumes:
            claim_name = dig(volume, "persistentVolumeClaim", "claimName")
            if claim_name is None:
                continue
            if bundle.get(Kind.PERSISTENT_VOLUME_CLAIM, claim_name) is None:
                msg = f"Volume '{volume.get('name')}' references missing claim "
                msg += f"'{claim_name}'"
                issues.append(error(deployment, msg))
    return issues


def volume_satisfies_claim(
    volume: dict[str, Any], claim: dict[str, Any]
) -> list[str]:
    """Return the reasons why a persistent volume can't be bound to a claim."""
    reasons = []
    try:
        capacity = parse_storage(dig(volume, "spec", "capacity", "storage", default=0))
        request = parse_storage(
            dig(claim, "spec", "resources", "requests", "storage", default=0)
        )
    except ValueError:
        return ["invalid storage quantity"]
    if capacity < request:
        reasons.append("capacity smaller than the requested storage")
    volume_modes = set(dig(volume, "spec", "accessModes", default=[]))
    claim_modes = set(dig(claim, "spec", "accessModes", default=[]))
    if not claim_modes.issubset(volume_modes):
        reasons.append("incompatible access modes")
    volume_class = dig(volume, "spec", "storageClassName")
    claim_class = dig(claim, "spec", "storageClassName")
    if (volume_class or "") != (claim_class or ""):
        reasons.append("different storage class")
    volume_mode = dig(volume, "spec", "volumeMode", default=DEFAULT_VOLUME_MODE)
    claim_mode = dig(claim, "spec", "volumeMode", default=DEFAULT_VOLUME_MODE)
    if volume_mode != claim_mode:
        reasons.append("different volume mode")
    return reasons


def check_storage_binding(bundle: Bundle) -> list[Issue]:
    """Every claim must be satisfiable by a persistent volume of the bundle.

    A bundle without persistent volumes relies on dynamic provisioning.
    """
    issues = []
    volumes = bundle.by_kind(Kind.PERSISTENT_VOLUME)
    for claim in bundle.by_kind(Kind.PERSISTENT_VOLUME_CLAIM):
        if dig(claim, "spec", "resources", "requests", "storage") is None:
            issues.append(error(claim, "Missing storage request"))
            continue
        if not dig(claim, "spec", "accessModes"):
            issues.append(error(claim, "Missing access modes"))
            continue
        volume_name = dig(claim, "spec", "volumeName")
        if volume_name is not None:
            volume = bundle.get(Kind.PERSISTENT_VOLUME, volume_name)
            if volume is None:
                msg = f"Bound to missing persistent volume '{volume_name}'"
                issues.append(error(claim, msg))
                continue
            reasons = volume_satisfies_claim(volume, claim)
            if reasons:
                msg = f"Can't bind to persistent volume '{volume_name}': "
                msg += ", ".join(reasons)
                issues.append(error(claim, msg))
            continue
        if len(volumes) == 0:
            msg = "No persistent volume in the bundle, relying on dynamic provisioning"
            issues.append(warning(claim, msg))
            continue
        candidates = {get_name(i): volume_satisfies_claim(i, claim) for i in volumes}
        if all(candidates.values()):
            details = "; ".join(
                f"{name}: {', '.join(reasons)}" for name, reasons in candidates.items()
            )
            msg = f"No compatible persistent volume ({details})"
            issues.append(error(claim, msg))
    return issues


def target_port_matches(target: Any, ports: list[dict[str, Any]]) -> bool:
    if isinstance(target, str) and not target.isdigit():
        return any(i.get("name") == target for i in ports)
    return any(i.get("containerPort") == int(target) for i in ports)


def check_selectors(bundle: Bundle) -> list[Issue]:
    """Deployment and service selectors must match the deployment pod labels."""
    issues = []
    deployments = bundle.by_kind(Kind.DEPLOYMENT)
    for deployment in deployments:
        match_labels = dig(deployment, "spec", "selector", "matchLabels", default={})
        if not match_labels:
            issues.append(error(deployment, "Empty selector"))
        elif not match_labels.items() <= pod_labels(deployment).items():
            issues.append(error(deployment, "Selector does not match pod labels"))
    for service in bundle.by_kind(Kind.SERVICE):
        selector = dig(service, "spec", "selector", default={})
        if not selector:
            issues.append(error(service, "Empty selector"))
            continue
        selected = [i for i in deployments if selector.items() <= pod_labels(i).items()]
        if not selected:
            issues.append(error(service, "Selector matches no pods of the bundle"))
            continue
        container_ports = [
            port
            for i in selected
            for c in containers(i)
            for port in c.get("ports") or []
            if isinstance(port, dict)
        ]
        for port in dig(service, "spec", "ports", default=[]):
            if not isinstance(port, dict):
                issues.append(error(service, "Invalid port definition"))
                continue
            target = port.get("targetPort", port.get("port"))
            if target is None:
                issues.append(error(service, f"Port '{port.get('name')}' has no port"))
            elif not target_port_matches(target, container_ports):
                msg = f"Target port '{target}' is not exposed by the selected pods"
                issues.append(error(service, msg))
    return issues


def check_single_replica(bundle: Bundle) -> list[Issue]:
    """A ReadWriteOnce claim can't be shared by several replicas on different nodes."""
    issues = []
    for deployment in bundle.by_kind(Kind.DEPLOYMENT):
        replicas = dig(deployment, "spec", "replicas", default=1)
        if not isinstance(replicas, int):
            issues.append(error(deployment, f"Invalid replicas '{replicas}'"))
            continue
        if replicas <= 1:
            continue
        for volume in pod_spec(deployment).get("volumes") or []:
            claim_name = dig(volume, "persistentVolumeClaim", "claimName")
            claim = bundle.get(Kind.PERSISTENT_VOLUME_CLAIM, claim_name)
            if claim is None:
                continue
            modes = dig(claim, "spec", "accessModes", default=[])
            if "ReadWriteOnce" in modes or "ReadWriteOncePod" in modes:
                msg = f"{replicas} replicas share the single-writer claim "
                msg += f"'{claim_name}'"
                issues.append(warning(deployment, msg))
    return issues


def references(manifest: dict[str, Any]) -> list[tuple[Kind, str]]:
    """Objects required by a manifest to be created before it."""
    kind = get_kind(manifest)
    refs = []
    if kind == Kind.DEPLOYMENT:
        for container in containers(manifest):
            for env in container.get("env") or []:
                name = dig(env, "valueFrom", "secretKeyRef", "name")
                if name is not None:
                    refs.append((Kind.SECRET, name))
            for env_from in container.get("envFrom") or []:
                name = dig(env_from, "secretRef", "name")
                if name is not None:
                    refs.append((Kind.SECRET, name))
        for volume in pod_spec(manifest).get("volumes") or []:
            name = dig(volume, "persistentVolumeClaim", "claimName")
            if name is not None:
                refs.append((Kind.PERSISTENT_VOLUME_CLAIM, name))
    elif kind == Kind.PERSISTENT_VOLUME_CLAIM:
        name = dig(manifest, "spec", "volumeName")
        if name is not None:
            refs.append((Kind.PERSISTENT_VOLUME, name))
    return refs


def check_apply_order(bundle: Bundle) -> list[Issue]:
    """Referenced objects should come before the objects using them."""
    issues = []
    for position, manifest in enumerate(bundle.manifests):
        for kind, name in references(manifest):
            index = bundle.index(kind, name)
            if index is not None and index > position:
                msg = f"References {kind.value} '{name}' which is applied later"
                issues.append(warning(manifest, msg))
    return issues


CHECKS = (
    check_well_formed,
    check_secret_data,
    check_secret_refs,
    check_volume_refs,
    check_storage_binding,
    check_selectors,
    check_single_replica,
    check_apply_order,
)


def validate_bundle(bundle: Bundle, *, logger: Logger) -> list[Issue]:
    """Run all the checks on a bundle and log the detected issues.

    Args:
        bundle (Bundle): manifests to verify.
        logger (Logger): Logger instance.

    Returns:
        list of Issue: detected problems. Empty if the bundle is consistent.

    """
    msg = f"Validating bundle '{bundle.name}' ({len(bundle.manifests)} manifests)"
    logger.info(msg)
    issues = []
    for check in CHECKS:
        issues += check(bundle)
    for issue in issues:
        if issue.severity == Severity.ERROR:
            logger.error("%s", issue)
        else:
            logger.warning("%s", issue)
    if len(issues) == 0:
        logger.info("Bundle '%s' is consistent", bundle.name)
    return issues


def same_quantity(desired: Any, live: Any) -> bool:
    """Compare two Kubernetes quantities by value ('1024Mi' equals '1Gi')."""
    try:
        return parse_storage(desired) == parse_storage(live)
    except (ValueError, TypeError):
        return False


def diff_manifest(desired: Any, live: Any, path: str = "") -> list[str]:
    """Return the paths where the live object does not match the desired one.

    The desired object must be a subset of the live one: fields added by the API
    server (status, defaults, metadata) are ignored. Lists must have the same length
    and are compared item by item. Empty collections match missing fields, since
    the API server drops them. Resource quantities are compared by value because
    the API server returns them in canonical form.
    """
    if live is None and desired in ({}, []):
        return []
    if isinstance(desired, dict):
        if not isinstance(live, dict):
            return [path or "."]
        diffs = []
        for key, value in desired.items():
            diffs += diff_manifest(value, live.get(key), f"{path}.{key}")
        return diffs
    if isinstance(desired, list):
        if not isinstance(live, list) or len(desired) != len(live):
            return [path]
        diffs = []
        for i, (item, live_item) in enumerate(zip(desired, live)):
            diffs += diff_manifest(item, live_item, f"{path}[{i}]")
        return diffs
    if desired == live:
        return []
    if any(i in path for i in QUANTITY_PARENTS) and same_quantity(desired, live):
        return []
    return [path]
