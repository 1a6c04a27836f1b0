from typing import Any

from tests.utils import (
    random_env_name,
    random_lower_string,
    random_name,
    random_port,
)


def port_dict() -> dict[str, Any]:
    """Dict with ServicePort minimal attributes."""
    return {"name": random_lower_string(8), "container_port": random_port()}


def credential_dict() -> dict[str, Any]:
    """Dict with Credential minimal attributes."""
    return {"key": random_env_name(), "value": random_lower_string()}


def storage_dict() -> dict[str, Any]:
    """Dict with Storage minimal attributes."""
    return {"mount_path": f"/{random_lower_string()}"}


def service_dict() -> dict[str, Any]:
    """Dict with StatefulService minimal attributes."""
    return {
        "name": random_name(),
        "image": f"{random_lower_string()}:latest",
        "ports": [port_dict()],
        "storage": storage_dict(),
    }


def jenkins_dict() -> dict[str, Any]:
    """Dict describing the reference Jenkins deployment."""
    return {
        "name": "jenkins",
        "image": "bitnami/jenkins:latest",
        "ports": [
            {"name": "http", "container_port": 8080},
            {"name": "jnlp", "container_port": 50000},
        ],
        "credentials": [
            {"key": "JENKINS_USERNAME", "value": "user"},
            {"key": "JENKINS_PASSWORD", "value": "password"},
        ],
        "storage": {
            "size": "10Gi",
            "access_modes": ["ReadWriteOnce"],
            "reclaim_policy": "Retain",
            "host_path": "/mnt/data/jenkins",
            "mount_path": "/bitnami/jenkins",
        },
        "service_type": "LoadBalancer",
    }
