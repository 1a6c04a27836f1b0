"""Functions to read YAML files with the description of the services to deploy."""

import os
from logging import Logger
from pathlib import Path

import yaml
from pydantic import ValidationError

from kubundle.exceptions import AbortProcedureError, InvalidYamlError
from kubundle.models.yml import StatefulService, YamlConfig
from kubundle.utils import find_duplicates


def load_files(path: Path, *, logger: Logger) -> list[str]:
    """Get the sorted list of the yaml files in a directory.

    Args:
        path (Path): path to the directory with the yaml files.
        logger (Logger): Logger instance.

    Returns:
        list of str: List of yaml files.

    Raises:
        AbortProcedureError if the directory is not a valid path.

    """
    msg = f"Detecting yaml files in folder: {path}"
    logger.info(msg)

    try:
        yaml_files = filter(lambda x: x.endswith((".yaml", ".yml")), os.listdir(path))
    except (FileNotFoundError, NotADirectoryError) as e:
        msg = f"No directory named: {path}"
        logger.error(msg)
        raise AbortProcedureError(msg) from e

    yaml_files = [os.path.join(path, i) for i in sorted(yaml_files)]
    logger.info("Files retrieved")
    logger.debug(yaml_files)
    return yaml_files


def read_config(fname: str, *, logger: Logger) -> YamlConfig:
    """Load the services described in a yaml file.

    Args:
        fname (str): path to the yaml file.
        logger (Logger): Logger instance.

    Returns:
        YamlConfig: the validated file content.

    Raises:
        InvalidYamlError when the YAML file does not exist, is not parsable, is empty
        or does not match the schema.

    """
    msg = f"Loading services from file: {fname}"
    logger.info(msg)

    try:
        with open(fname) as f:
            config = yaml.load(f, Loader=yaml.SafeLoader)
    except FileNotFoundError as e:
        msg = f"Error reading file {fname}"
        logger.error(msg)
        raise InvalidYamlError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Error parsing file {fname}"
        logger.error(msg)
        raise InvalidYamlError(msg) from e

    if not config:  # empty string/file
        msg = f"Empty configuration in file {fname}. Ignoring"
        logger.warning(msg)
        raise InvalidYamlError(msg)
    if not isinstance(config, dict):
        msg = f"Invalid YAML file {fname}: expected a mapping"
        logger.error(msg)
        raise InvalidYamlError(msg)

    try:
        return YamlConfig(**config)
    except ValidationError as e:
        msg = f"Invalid YAML file {fname}: {e!r}"
        logger.error(msg)
        raise InvalidYamlError(msg) from e


def load_services_from_yaml_files(
    path: Path, *, logger: Logger
) -> tuple[list[StatefulService], bool]:
    """Retrieve the list of services from the YAML files of a directory.

    An invalid file does not stop the procedure. Services with the same name defined
    in different files are discarded after the first occurrence.

    Args:
        path (Path): path to the directory with the yaml files.
        logger (Logger): Logger instance.

    Returns:
        tuple of (list of StatefulService, bool): services and True if at least one
            file could not be loaded.

    Raises:
        AbortProcedureError if the directory is not a valid path (forwarded from
        'load_files' function).

    """
    error = False
    services: list[StatefulService] = []
    for fname in load_files(path, logger=logger):
        try:
            config = read_config(fname, logger=logger)
        except InvalidYamlError:
            error = True
            continue
        for service in config.services:
            try:
                find_duplicates([*services, service], "name")
            except ValueError:
                msg = f"Service {service.name} in file {fname} already defined"
                logger.error(msg)
                error = True
                continue
            services.append(service)

    if error:
        logger.error("Not all YAML files have been loaded.")
    return services, error
