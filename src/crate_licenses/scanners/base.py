"""Base interface for dependency graph scanners.

Scanners turn a Cargo manifest or ``cargo metadata`` output into the crate
records evaluated by the policy engine, including the license-like files
found at each crate root.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from crate_licenses.models import CrateRecord, LicenseFile

logger = logging.getLogger(__name__)

# File name prefixes (case-insensitive) collected from crate roots.
LICENSE_FILE_PREFIXES = ("LICENSE", "LICENCE", "COPYING", "UNLICENSE")


def collect_license_files(
    crate_root: Path, declared: Optional[str] = None
) -> tuple[LicenseFile, ...]:
    """Collect the license-like files of a crate.

    Args:
        crate_root: Directory containing the crate manifest.
        declared: License file path declared by the crate, relative to the root.

    Returns:
        License files sorted by name. Files that cannot be read are kept with
        ``content=None``.
    """
    found: dict[str, Path] = {}
    if crate_root.is_dir():
        for path in sorted(crate_root.iterdir()):
            if path.is_file() and path.name.upper().startswith(LICENSE_FILE_PREFIXES):
                found[path.name] = path

    if declared:
        declared_path = crate_root / declared
        if declared_path.is_file():
            found.setdefault(declared, declared_path)
        else:
            logger.debug("Declared license file %s does not exist", declared_path)

    files = []
    for name, path in found.items():
        try:
            content: Optional[bytes] = path.read_bytes()
        except OSError as e:
            logger.warning("Could not read %s: %s", path, e)
            content = None
        files.append(LicenseFile(name=name, content=content, path=str(path)))
    return tuple(files)


class BaseScanner(ABC):
    """Abstract base class for dependency graph scanners.

    Attributes:
        source_path: Optional path to the file being scanned.
    """

    def __init__(self, source_path: Optional[Path] = None) -> None:
        """Initialize the scanner.

        Args:
            source_path: Optional path to the source file (manifest, metadata, etc.).
        """
        self.source_path = source_path

    @abstractmethod
    def scan(self) -> list[CrateRecord]:
        """Scan the source and build crate records.

        Returns:
            List of CrateRecord objects, one per crate in the graph.

        Raises:
            FileNotFoundError: If the source file does not exist.
            ValueError: If the source format is invalid.
        """
        ...

    @classmethod
    @abstractmethod
    def can_handle(cls, path: Path) -> bool:
        """Check if this scanner can handle the given file.

        Args:
            path: Path to check.

        Returns:
            True if this scanner can process the file, False otherwise.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return a human-readable name for this scanner's source type.

        Returns:
            Name like "Cargo.toml", "cargo metadata", etc.
        """
        ...
