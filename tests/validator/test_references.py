from typing import Any

from kubundle.models.bundle import Bundle, Kind
from kubundle.models.report import Severity
from kubundle.validator import (
    check_apply_order,
    check_secret_refs,
    check_single_replica,
    check_volume_refs,
)


def container(bundle: Bundle) -> dict[str, Any]:
    deployment = bundle.get(Kind.DEPLOYMENT, "jenkins")
    return deployment["spec"]["template"]["spec"]["containers"][0]


def pod(bundle: Bundle) -> dict[str, Any]:
    return bundle.get(Kind.DEPLOYMENT, "jenkins")["spec"]["template"]["spec"]


def test_secret_refs_resolved(jenkins_bundle: Bundle) -> None:
    assert check_secret_refs(jenkins_bundle) == []


def test_missing_secret(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    bundle.manifests.pop(0)
    issues = check_secret_refs(bundle)
    assert len(issues) == 2
    for issue in issues:
        assert issue.severity == Severity.ERROR
        assert issue.kind == "Deployment"
        assert "missing secret 'jenkins-secret'" in issue.message


def test_missing_secret_key(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    bundle.get(Kind.SECRET, "jenkins-secret")["data"].pop("JENKINS_PASSWORD")
    [issue] = check_secret_refs(bundle)
    assert "missing key 'JENKINS_PASSWORD'" in issue.message


def test_key_in_string_data(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    secret = bundle.get(Kind.SECRET, "jenkins-secret")
    secret["stringData"] = {"JENKINS_PASSWORD": secret["data"].pop("JENKINS_PASSWORD")}
    assert check_secret_refs(bundle) == []


def test_optional_secret_ref(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    bundle.manifests.pop(0)
    for env in container(bundle)["env"]:
        env["valueFrom"]["secretKeyRef"]["optional"] = True
    assert check_secret_refs(bundle) == []


def test_env_from_missing_secret(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    container(bundle)["envFrom"] = [{"secretRef": {"name": "other-secret"}}]
    [issue] = check_secret_refs(bundle)
    assert "envFrom references missing secret 'other-secret'" in issue.message


def test_volume_refs_resolved(jenkins_bundle: Bundle) -> None:
    assert check_volume_refs(jenkins_bundle) == []


def test_mount_without_volume(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    container(bundle)["volumeMounts"][0]["name"] = "other-volume"
    [issue] = check_volume_refs(bundle)
    assert issue.severity == Severity.ERROR
    assert "Volume mount 'other-volume'" in issue.message


def test_missing_claim(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    pod(bundle)["volumes"][0]["persistentVolumeClaim"]["claimName"] = "other-pvc"
    [issue] = check_volume_refs(bundle)
    assert "references missing claim 'other-pvc'" in issue.message


def test_non_claim_volumes_ignored(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    pod(bundle)["volumes"].append({"name": "tmp", "emptyDir": {}})
    assert check_volume_refs(bundle) == []


def test_single_replica(jenkins_bundle: Bundle) -> None:
    assert check_single_replica(jenkins_bundle) == []


def test_multiple_replicas_on_single_writer_claim(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    bundle.get(Kind.DEPLOYMENT, "jenkins")["spec"]["replicas"] = 3
    [issue] = check_single_replica(bundle)
    assert issue.severity == Severity.WARNING
    assert "3 replicas" in issue.message


def test_multiple_replicas_on_shared_claim(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    bundle.get(Kind.DEPLOYMENT, "jenkins")["spec"]["replicas"] = 3
    claim = bundle.get(Kind.PERSISTENT_VOLUME_CLAIM, "jenkins-pvc")
    claim["spec"]["accessModes"] = ["ReadWriteMany"]
    assert check_single_replica(bundle) == []


def test_apply_order(jenkins_bundle: Bundle) -> None:
    assert check_apply_order(jenkins_bundle) == []


def test_reversed_apply_order(jenkins_bundle: Bundle) -> None:
    bundle = Bundle(
        name=jenkins_bundle.name, manifests=list(reversed(jenkins_bundle.manifests))
    )
    issues = check_apply_order(bundle)
    # Deployment needs the secret twice and the claim once
    assert len(issues) == 3
    assert all(i.severity == Severity.WARNING for i in issues)
    assert check_apply_order(bundle.sorted()) == []


def test_claim_bound_to_later_volume(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    claim = bundle.get(Kind.PERSISTENT_VOLUME_CLAIM, "jenkins-pvc")
    claim["spec"]["volumeName"] = "jenkins-pv"
    volume = bundle.manifests.pop(1)
    bundle.manifests.append(volume)
    [issue] = check_apply_order(bundle)
    assert issue.kind == "PersistentVolumeClaim"
    assert "PersistentVolume 'jenkins-pv'" in issue.message


def test_invalid_replicas(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    bundle.get(Kind.DEPLOYMENT, "jenkins")["spec"]["replicas"] = "two"
    [issue] = check_single_replica(bundle)
    assert issue.severity == Severity.ERROR
    assert issue.message == "Invalid replicas 'two'"


def test_null_replicas_defaults_to_one(jenkins_bundle: Bundle) -> None:
    bundle = jenkins_bundle.model_copy(deep=True)
    bundle.get(Kind.DEPLOYMENT, "jenkins")["spec"]["replicas"] = None
    assert check_single_replica(bundle) == []
