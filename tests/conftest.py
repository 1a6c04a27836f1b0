import os
from logging import Logger, getLogger

import pytest

from kubundle.generator import build_bundle
from kubundle.models.bundle import Bundle
from kubundle.models.yml import StatefulService
from tests.schemas.utils import jenkins_dict, service_dict


@pytest.fixture(autouse=True)
def clear_os_environment() -> None:
    """Clear the OS environment."""
    os.environ.clear()


@pytest.fixture
def logger() -> Logger:
    """Fixture with a plain logger, records are captured by caplog."""
    return getLogger("kubundle-test")


@pytest.fixture
def service() -> StatefulService:
    """Fixture with a StatefulService with minimal attributes."""
    return StatefulService(**service_dict())


@pytest.fixture
def jenkins() -> StatefulService:
    """Fixture with the reference Jenkins service."""
    return StatefulService(**jenkins_dict())


@pytest.fixture
def jenkins_bundle(jenkins: StatefulService) -> Bundle:
    """Fixture with the bundle generated for the reference Jenkins service."""
    return build_bundle(jenkins)
