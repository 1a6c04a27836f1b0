"""Command line entry point."""

from logging import Logger
from pathlib import Path

from kubundle.cluster import KubernetesApplier
from kubundle.config import Settings, get_settings
from kubundle.exceptions import AbortProcedureError, ApplyError, MissingCredentialError
from kubundle.generator import build_bundle
from kubundle.loaders.manifests import load_bundle
from kubundle.loaders.yaml_files import load_services_from_yaml_files
from kubundle.logger import create_logger
from kubundle.models.bundle import Bundle
from kubundle.models.report import Issue, Severity
from kubundle.models.yml import ServiceType, StatefulService
from kubundle.parser import parser
from kubundle.validator import validate_bundle
from kubundle.writer import write_bundle


def has_failures(issues: list[Issue], *, strict: bool = False) -> bool:
    """Return True if at least one issue is an error (or a warning in strict mode)."""
    if strict:
        return len(issues) > 0
    return any(i.severity == Severity.ERROR for i in issues)


def generate_bundles(
    services: list[StatefulService], *, settings: Settings, logger: Logger
) -> tuple[list[tuple[StatefulService, Bundle]], bool]:
    """Build and validate the bundle of each service.

    Bundles failing validation are discarded.

    Returns:
        tuple: list of (service, bundle) pairs and True if at least one service
            failed.

    """
    error = False
    bundles = []
    for service in services:
        logger.info("Generating manifests of service %s", service.name)
        try:
            bundle = build_bundle(service, namespace=settings.NAMESPACE)
        except MissingCredentialError as e:
            logger.error("Service %s: %s", service.name, e.message)
            error = True
            continue
        issues = validate_bundle(bundle, logger=logger)
        if has_failures(issues, strict=settings.STRICT):
            logger.error("Invalid bundle for service %s. Skipping", service.name)
            error = True
            continue
        bundles.append((service, bundle))
    return bundles, error


def generate(*, settings: Settings, logger: Logger) -> bool:
    """Write the manifests of all the services into the output directory.

    Returns:
        bool: True if at least one error occurred.

    """
    services, error = load_services_from_yaml_files(
        settings.SERVICES_CONF_DIR, logger=logger
    )
    bundles, failed = generate_bundles(services, settings=settings, logger=logger)
    for _, bundle in bundles:
        files = write_bundle(
            bundle,
            settings.OUTPUT_DIR,
            single_file=settings.SINGLE_FILE_OUTPUT,
            logger=logger,
        )
        for fname in files:
            print(fname)
    return error or failed


def validate(paths: list[Path], *, settings: Settings, logger: Logger) -> bool:
    """Validate the manifests found in the given files and directories.

    Returns:
        bool: True if the files can't be loaded or the bundle is not consistent.

    """
    bundle, error = load_bundle(paths, logger=logger)
    issues = validate_bundle(bundle, logger=logger)
    for issue in issues:
        print(f"{issue.severity.value}: {issue}")
    failed = has_failures(issues, strict=settings.STRICT)
    if not error and not failed:
        print(f"{bundle.name}: {len(bundle.manifests)} manifests, no errors")
    return error or failed


def apply(*, settings: Settings, logger: Logger, wait: bool = False) -> bool:
    """Generate, validate and apply the manifests of all the services.

    A failure on a service does not stop the others.

    Returns:
        bool: True if at least one error occurred.

    """
    services, error = load_services_from_yaml_files(
        settings.SERVICES_CONF_DIR, logger=logger
    )
    bundles, failed = generate_bundles(services, settings=settings, logger=logger)
    error = error or failed
    if len(bundles) == 0:
        return error

    applier = KubernetesApplier(settings=settings, logger=logger)
    for service, bundle in bundles:
        try:
            results = applier.apply_bundle(bundle)
        except ApplyError:
            logger.error("Failed to apply bundle of service %s", service.name)
            error = True
            continue
        for result in results:
            print(result)

        if wait and service.service_type == ServiceType.LOAD_BALANCER:
            endpoint = applier.wait_for_endpoint(
                service.service_name, service.namespace or settings.NAMESPACE
            )
            if endpoint is None:
                error = True
            else:
                print(f"{service.name} available at {endpoint}")
    return error


def main(log_level: str, command: str, **kwargs) -> None:
    """Main function.

    Based on the command, generate the manifests of the services described in the
    YAML files of the configuration directory, validate existing manifests or apply
    the generated manifests to the cluster.

    Errors on a single file, service or object do not interrupt the procedure but
    make the script exit with status 1.
    """
    settings = get_settings()
    logger = create_logger(settings.APP_NAME, level=log_level)

    try:
        if command == "generate":
            error = generate(settings=settings, logger=logger)
        elif command == "validate":
            error = validate(kwargs["paths"], settings=settings, logger=logger)
        elif command == "apply":
            error = apply(
                settings=settings, logger=logger, wait=kwargs.get("wait", False)
            )
        else:
            raise ValueError(f"Unknown command: {command}")
    except AbortProcedureError:
        logger.error("Procedure aborted.")
        exit(1)

    if error:
        logger.error("Found at least one error.")
        exit(1)


def run() -> None:
    """Parse the command line arguments and call main."""
    args = parser.parse_args()
    main(
        args.loglevel.upper(),
        args.command,
        paths=getattr(args, "paths", None),
        wait=getattr(args, "wait", False),
    )


if __name__ == "__main__":
    run()
