"""Application utilities."""

import base64
import binascii
import os
import re
from decimal import Decimal
from typing import Any

from kubernetes.utils import parse_quantity

from kubundle.exceptions import MissingCredentialError

DNS1123_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
DNS1123_SUBDOMAIN = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)
ENV_VAR_NAME = re.compile(r"^[-._a-zA-Z][-._a-zA-Z0-9]*$")


def find_duplicates(items: list[Any], attr: str | None = None) -> list[Any]:
    """Find duplicate items in a list.

    Optionally filter items by attribute.

    Args:
        items (list of Any): List of items to inspects
        attr (str | None): Optional to key to use as reference for duplicate values in
            the list.

    Returns:
        list (Any): the original list.

    Raises:
        ValueError if at least one duplicate is found.

    """
    if attr:
        values = [getattr(j, attr) for j in items]
    else:
        values = items
    seen = set()
    dupes = [str(x) for x in values if x in seen or seen.add(x)]
    if len(dupes) > 0:
        if attr:
            msg = f"There are multiple items with identical {attr}: {','.join(dupes)}"
        else:
            msg = f"There are multiple identical items: {','.join(dupes)}"
        raise ValueError(msg)
    return items


def is_dns1123_label(value: str) -> bool:
    """Return True if value can be used as a Kubernetes object or port name."""
    return len(value) <= 63 and DNS1123_LABEL.match(value) is not None


def is_dns1123_subdomain(value: str) -> bool:
    """Return True if value is a valid DNS subdomain (most object names)."""
    return len(value) <= 253 and DNS1123_SUBDOMAIN.match(value) is not None


def encode_secret_value(value: str) -> str:
    """Base64 encode a string as stored in the `data` field of a Secret."""
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def is_base64(value: Any) -> bool:
    """Return True if value is a valid base64 encoded string."""
    if not isinstance(value, str):
        return False
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def parse_storage(quantity: str | int | float) -> Decimal:
    """Convert a Kubernetes quantity (i.e. '10Gi') into a number of bytes.

    Raises:
        ValueError if the quantity is not valid.

    """
    return parse_quantity(quantity)


def resolve_env_value(env: str) -> str:
    """Read the value of a credential from the process environment.

    Raises:
        MissingCredentialError if the variable is not set.

    """
    value = os.environ.get(env)
    if value is None:
        raise MissingCredentialError(f"Environment variable {env} is not set")
    return value
