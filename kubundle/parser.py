"""Command line arguments parser."""

import argparse
import logging
from pathlib import Path

log_values = [i.lower() for i in logging._nameToLevel.keys()]

parser = argparse.ArgumentParser(
    prog="kubundle",
    description="Generate, validate and apply the Kubernetes manifests of stateful "
    "single replica services.",
)
parser.add_argument(
    "-l",
    "--loglevel",
    default="warning",
    choices=log_values,
    help=f"Provide logging level. Valid values: {log_values}. \
        Example --loglevel debug, default=warning",
)
subparsers = parser.add_subparsers(dest="command", required=True)

subparsers.add_parser(
    "generate",
    help="Generate and validate the manifests of the services in SERVICES_CONF_DIR "
    "and write them into OUTPUT_DIR",
)

validate_parser = subparsers.add_parser(
    "validate", help="Validate manifest files or directories"
)
validate_parser.add_argument(
    "paths", nargs="+", type=Path, help="YAML files or directories with manifests"
)

apply_parser = subparsers.add_parser(
    "apply",
    help="Generate, validate and apply the manifests of the services in "
    "SERVICES_CONF_DIR",
)
apply_parser.add_argument(
    "--wait",
    action="store_true",
    help="Wait for the external address of LoadBalancer services and print it",
)
