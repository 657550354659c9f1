"""Dependency graph scanners.

This module provides scanners that build crate records from Cargo manifests
and ``cargo metadata`` output.
"""

from pathlib import Path

from crate_licenses.scanners.base import BaseScanner, collect_license_files
from crate_licenses.scanners.cargo import CargoManifestScanner
from crate_licenses.scanners.metadata import CargoMetadataScanner

__all__ = [
    "BaseScanner",
    "CargoManifestScanner",
    "CargoMetadataScanner",
    "collect_license_files",
    "get_scanner",
]

# Registry of available scanners in priority order
_SCANNERS: list[type[BaseScanner]] = [
    CargoManifestScanner,
    CargoMetadataScanner,
]


def get_scanner(path: Path) -> BaseScanner:
    """Get the appropriate scanner for a given file path.

    Args:
        path: Path to a Cargo.toml or cargo metadata JSON file.

    Returns:
        Scanner instance configured for the given file.

    Raises:
        ValueError: If no scanner can handle the given file.
    """
    for scanner_cls in _SCANNERS:
        if scanner_cls.can_handle(path):
            return scanner_cls(path)

    raise ValueError(
        f"No scanner available for '{path.name}'. "
        f"Supported files: Cargo.toml, cargo metadata JSON (*.json)"
    )
