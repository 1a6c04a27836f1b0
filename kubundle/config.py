"""Application settings."""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import AfterValidator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def invalid_empty(v: str | None) -> str | None:
    """An empty string is not a valid input.

    Args:
        v (str | None): input string.

    Returns:
        str | None: the input string

    """
    if v == "":
        raise ValueError("Empty string is not a valid value")
    return v


class Settings(BaseSettings):
    """Settings for the application."""

    APP_NAME: Annotated[
        str, Field(default="kubundle", description="Application name.")
    ]
    SERVICES_CONF_DIR: Annotated[
        Path,
        Field(
            default="services-conf",
            description="Path to the directory containing the yaml files describing "
            "the services to deploy.",
        ),
    ]
    OUTPUT_DIR: Annotated[
        Path,
        Field(
            default="manifests",
            description="Path to the directory where generated manifests are written.",
        ),
    ]
    SINGLE_FILE_OUTPUT: Annotated[
        bool,
        Field(
            default=False,
            description="Write a single multi-document file for each service instead "
            "of a file for each object.",
        ),
    ]
    NAMESPACE: Annotated[
        str | None,
        Field(
            default=None,
            description="Namespace to use for namespaced objects when the service "
            "does not define one.",
        ),
        AfterValidator(invalid_empty),
    ]
    KUBECONFIG: Annotated[
        Path | None,
        Field(default=None, description="Path to the kubeconfig file."),
    ]
    KUBE_CONTEXT: Annotated[
        str | None,
        Field(default=None, description="Kubeconfig context to use."),
        AfterValidator(invalid_empty),
    ]
    IN_CLUSTER: Annotated[
        bool,
        Field(
            default=False,
            description="Use the service account of the pod running the application.",
        ),
    ]
    REQUEST_TIMEOUT: Annotated[
        int, Field(default=10, gt=0, description="Kubernetes API request timeout (s).")
    ]
    APPLY_DRY_RUN: Annotated[
        bool,
        Field(
            default=False,
            description="Send server-side dry-run requests when applying manifests.",
        ),
    ]
    ENDPOINT_WAIT_TIMEOUT: Annotated[
        int,
        Field(
            default=300,
            ge=0,
            description="Maximum time to wait for a load balancer address (s).",
        ),
    ]
    ENDPOINT_POLL_INTERVAL: Annotated[
        int,
        Field(
            default=5,
            gt=0,
            description="Time between two load balancer address checks (s).",
        ),
    ]
    STRICT: Annotated[
        bool,
        Field(default=False, description="Treat validation warnings as errors."),
    ]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Retrieve cached settings.

    Returns:
        Settings: Cached settings value.

    """
    return Settings()
