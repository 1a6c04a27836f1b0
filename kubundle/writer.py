"""Write bundles of manifests to YAML files."""

from logging import Logger
from pathlib import Path
from typing import Any

import yaml

from kubundle.models.bundle import Bundle, get_kind, get_name

HEAD_KEYS = ("apiVersion", "kind", "metadata")


def ordered(manifest: dict[str, Any]) -> dict[str, Any]:
    """Return the manifest with apiVersion, kind and metadata first."""
    head = {k: manifest[k] for k in HEAD_KEYS if k in manifest}
    tail = {k: v for k, v in manifest.items() if k not in HEAD_KEYS}
    return {**head, **tail}


def dump_manifest(manifest: dict[str, Any]) -> str:
    return yaml.safe_dump(ordered(manifest), sort_keys=False, default_flow_style=False)


def dump_bundle(bundle: Bundle) -> str:
    """Render the bundle as a multi-document YAML string."""
    return "---\n".join(dump_manifest(i) for i in bundle.manifests)


def manifest_file_name(bundle: Bundle, manifest: dict[str, Any]) -> str:
    """File name of a manifest: '<bundle>-<kind suffix>.yaml'.

    Unsupported kinds use the lower case kind and the object name.
    """
    kind = get_kind(manifest)
    if kind is not None:
        return f"{bundle.name}-{kind.suffix}.yaml"
    suffix = str(manifest.get("kind")).lower()
    return f"{bundle.name}-{suffix}-{get_name(manifest)}.yaml"


def write_bundle(
    bundle: Bundle, output_dir: Path, *, logger: Logger, single_file: bool = False
) -> list[Path]:
    """Write the bundle manifests into the output directory.

    The directory is created if missing. Existing files are overwritten.

    Args:
        bundle (Bundle): manifests to write.
        output_dir (Path): target directory.
        logger (Logger): Logger instance.
        single_file (bool): write a single multi-document file.

    Returns:
        list of Path: written files, in apply order.

    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if single_file:
        files = {output_dir / f"{bundle.name}.yaml": dump_bundle(bundle)}
    else:
        files = {}
        for manifest in bundle.manifests:
            fname = output_dir / manifest_file_name(bundle, manifest)
            if fname in files:
                files[fname] += "---\n" + dump_manifest(manifest)
            else:
                files[fname] = dump_manifest(manifest)

    for fname, content in files.items():
        fname.write_text(content, encoding="utf-8")
        logger.info("Written %s", fname)
    return list(files)
