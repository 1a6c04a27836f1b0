import string
from random import choices, randint


def random_lower_string(k: int = 32) -> str:
    """Return a generic random string."""
    return "".join(choices(string.ascii_lowercase, k=k))


def random_name() -> str:
    """Return a random string usable as Kubernetes object name."""
    return random_lower_string(12)


def random_port() -> int:
    """Return a random non privileged port."""
    return randint(1024, 65535)


def random_env_name() -> str:
    """Return a random upper case environment variable name."""
    return "".join(choices(string.ascii_uppercase, k=16))


def random_size() -> str:
    """Return a random storage quantity expressed in Gi."""
    return f"{randint(1, 100)}Gi"
