"""Functions to read Kubernetes manifests from YAML files."""

import os
from logging import Logger
from pathlib import Path
from typing import Any

import yaml

from kubundle.exceptions import InvalidYamlError
from kubundle.loaders.yaml_files import load_files
from kubundle.models.bundle import Bundle


def read_manifests(fname: str | Path, *, logger: Logger) -> list[dict[str, Any]]:
    """Read all the documents of a YAML file.

    Empty documents are skipped and 'List' objects are expanded into their items.

    Args:
        fname (str | Path): path to the yaml file.
        logger (Logger): Logger instance.

    Returns:
        list of dict: the manifests in file order.

    Raises:
        InvalidYamlError when the file does not exist, is not parsable or contains a
        document which is not a mapping.

    """
    msg = f"Loading manifests from file: {fname}"
    logger.info(msg)

    try:
        with open(fname) as f:
            documents = list(yaml.load_all(f, Loader=yaml.SafeLoader))
    except (FileNotFoundError, IsADirectoryError) as e:
        msg = f"Error reading file {fname}"
        logger.error(msg)
        raise InvalidYamlError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Error parsing file {fname}"
        logger.error(msg)
        raise InvalidYamlError(msg) from e

    manifests = []
    for document in documents:
        if document is None:
            continue
        if not isinstance(document, dict):
            msg = f"Invalid document in file {fname}: expected a mapping"
            logger.error(msg)
            raise InvalidYamlError(msg)
        if document.get("kind") == "List":
            items = document.get("items") or []
            if not all(isinstance(i, dict) for i in items):
                msg = f"Invalid List items in file {fname}: expected mappings"
                logger.error(msg)
                raise InvalidYamlError(msg)
            manifests += items
        else:
            manifests.append(document)

    if len(manifests) == 0:
        logger.warning("No manifests in file %s", fname)
    return manifests


def load_bundle(
    paths: list[Path], *, logger: Logger, name: str | None = None
) -> tuple[Bundle, bool]:
    """Build a bundle from files and directories of manifests.

    Directories are scanned (not recursively) for yaml files in alphabetical order.
    An invalid file does not stop the procedure.

    Args:
        paths (list of Path): files or directories.
        logger (Logger): Logger instance.
        name (str | None): bundle name. Defaults to the first path name.

    Returns:
        tuple of (Bundle, bool): the bundle and True if at least one file could not be
            loaded.

    Raises:
        AbortProcedureError if a directory can't be read (forwarded from 'load_files'
        function).

    """
    error = False
    manifests = []
    for path in paths:
        if os.path.isdir(path):
            fnames = load_files(path, logger=logger)
        else:
            fnames = [path]
        for fname in fnames:
            try:
                manifests += read_manifests(fname, logger=logger)
            except InvalidYamlError:
                error = True

    if name is None:
        name = Path(paths[0]).stem if len(paths) > 0 else "bundle"
    return Bundle(name=name, manifests=manifests), error
