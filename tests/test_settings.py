from pathlib import Path
from typing import Any, Literal

import pytest
from pydantic import ValidationError
from pytest_cases import parametrize_with_cases

from kubundle.config import Settings, get_settings


class CaseSettings:
    def case_conf_dir(self) -> tuple[Literal["SERVICES_CONF_DIR"], Path]:
        return "SERVICES_CONF_DIR", Path("/test/path")

    def case_output_dir(self) -> tuple[Literal["OUTPUT_DIR"], Path]:
        return "OUTPUT_DIR", Path("/test/output")

    def case_single_file(self) -> tuple[Literal["SINGLE_FILE_OUTPUT"], bool]:
        return "SINGLE_FILE_OUTPUT", True

    def case_namespace(self) -> tuple[Literal["NAMESPACE"], str]:
        return "NAMESPACE", "ci"

    def case_kubeconfig(self) -> tuple[Literal["KUBECONFIG"], Path]:
        return "KUBECONFIG", Path("/home/user/.kube/config")

    def case_context(self) -> tuple[Literal["KUBE_CONTEXT"], str]:
        return "KUBE_CONTEXT", "test-context"

    def case_timeout(self) -> tuple[Literal["REQUEST_TIMEOUT"], int]:
        return "REQUEST_TIMEOUT", 30

    def case_dry_run(self) -> tuple[Literal["APPLY_DRY_RUN"], bool]:
        return "APPLY_DRY_RUN", True

    def case_strict(self) -> tuple[Literal["STRICT"], bool]:
        return "STRICT", True


class CaseInvalidSettings:
    def case_namespace_empty_string(self) -> tuple[Literal["NAMESPACE"], str]:
        return "NAMESPACE", ""

    def case_context_empty_string(self) -> tuple[Literal["KUBE_CONTEXT"], str]:
        return "KUBE_CONTEXT", ""

    def case_timeout_zero(self) -> tuple[Literal["REQUEST_TIMEOUT"], int]:
        return "REQUEST_TIMEOUT", 0

    def case_negative_wait(self) -> tuple[Literal["ENDPOINT_WAIT_TIMEOUT"], int]:
        return "ENDPOINT_WAIT_TIMEOUT", -1

    def case_poll_interval_zero(self) -> tuple[Literal["ENDPOINT_POLL_INTERVAL"], int]:
        return "ENDPOINT_POLL_INTERVAL", 0


def test_settings_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.APP_NAME == "kubundle"
    assert settings.SERVICES_CONF_DIR == Path("services-conf")
    assert settings.OUTPUT_DIR == Path("manifests")
    assert not settings.SINGLE_FILE_OUTPUT
    assert settings.NAMESPACE is None
    assert settings.KUBECONFIG is None
    assert settings.KUBE_CONTEXT is None
    assert not settings.IN_CLUSTER
    assert settings.REQUEST_TIMEOUT == 10
    assert not settings.APPLY_DRY_RUN
    assert settings.ENDPOINT_WAIT_TIMEOUT == 300
    assert settings.ENDPOINT_POLL_INTERVAL == 5
    assert not settings.STRICT


@parametrize_with_cases("key, value", cases=CaseSettings)
def test_settings_single_attr(key: str, value: Any) -> None:
    settings = Settings(_env_file=None, **{key: value})
    assert getattr(settings, key) == value


@parametrize_with_cases("key, value", cases=CaseInvalidSettings)
def test_settings_invalid_attr(key: str, value: Any) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{key: value})


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NAMESPACE", "ci")
    monkeypatch.setenv("STRICT", "true")
    settings = Settings(_env_file=None)
    assert settings.NAMESPACE == "ci"
    assert settings.STRICT


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
