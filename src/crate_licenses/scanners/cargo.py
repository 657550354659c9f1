"""Scanner for Cargo manifests.

This module walks a crate's ``Cargo.toml`` and the manifests of its path
dependencies, producing one crate record per local crate. Registry and git
dependencies cannot be located from a manifest alone; use the output of
``cargo metadata`` with :class:`CargoMetadataScanner` for complete graphs.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any

from crate_licenses.models import CrateRecord
from crate_licenses.scanners.base import BaseScanner, collect_license_files

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "Cargo.toml"

DEPENDENCY_TABLES = ("dependencies", "build-dependencies", "dev-dependencies")


def load_manifest(path: Path) -> dict[str, Any]:
    """Load and minimally validate a Cargo manifest.

    Args:
        path: Path to Cargo.toml.

    Returns:
        The decoded manifest.

    Raises:
        FileNotFoundError: If the manifest does not exist.
        ValueError: If the manifest is not valid TOML or lacks a package name or version.
    """
    if not path.is_file():
        raise FileNotFoundError(f"cargo manifest path '{path}' does not exist")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"failed to parse manifest at '{path}': {e}") from e

    package = data.get("package")
    if not isinstance(package, dict):
        raise ValueError(f"failed to parse manifest at '{path}': missing [package] table")
    for required in ("name", "version"):
        if not isinstance(package.get(required), str):
            raise ValueError(
                f"failed to parse manifest at '{path}': missing field '{required}'"
            )

    return data


def _string_field(package: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = package.get(key)
        if isinstance(value, str):
            return value
        if value is not None:
            # e.g. `license.workspace = true`
            logger.debug("Ignoring non-string '%s' field %r", key, value)
    return None


class CargoManifestScanner(BaseScanner):
    """Scanner for Cargo.toml manifests and their path dependencies.

    Crates are returned root first, then depth-first in declaration order.
    Each crate directory is visited once.
    """

    def scan(self) -> list[CrateRecord]:
        """Scan the manifest and its path dependencies.

        Returns:
            List of CrateRecord objects.

        Raises:
            FileNotFoundError: If a manifest does not exist.
            ValueError: If a manifest is invalid or source_path is not set.
        """
        if self.source_path is None:
            raise ValueError("source_path must be set before calling scan()")

        records: list[CrateRecord] = []
        self._visit(self.source_path.resolve(), records, set())
        return records

    def _visit(self, manifest: Path, records: list[CrateRecord], seen: set[Path]) -> None:
        crate_root = manifest.parent
        if crate_root in seen:
            return
        seen.add(crate_root)

        data = load_manifest(manifest)
        package = data["package"]
        license_file = _string_field(package, "license-file", "license_file")

        records.append(
            CrateRecord(
                name=package["name"],
                version=package["version"],
                license=_string_field(package, "license"),
                license_file=license_file,
                files=collect_license_files(crate_root, license_file),
            )
        )

        for table in DEPENDENCY_TABLES:
            dependencies = data.get(table, {})
            if not isinstance(dependencies, dict):
                continue
            for dep_name, spec in dependencies.items():
                if isinstance(spec, dict) and isinstance(spec.get("path"), str):
                    dep_manifest = (crate_root / spec["path"] / MANIFEST_FILENAME).resolve()
                    self._visit(dep_manifest, records, seen)
                else:
                    logger.warning(
                        "Skipping dependency '%s' of '%s': only path dependencies "
                        "can be scanned from a manifest",
                        dep_name,
                        package["name"],
                    )

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        """Check if this scanner can handle the given file.

        Args:
            path: Path to check.

        Returns:
            True if the file is named "Cargo.toml", False otherwise.
        """
        return path.name == MANIFEST_FILENAME

    @property
    def source_name(self) -> str:
        """Return a human-readable name for this scanner's source type.

        Returns:
            The string "Cargo.toml".
        """
        return MANIFEST_FILENAME
