"""Scanner for ``cargo metadata`` output.

Reads the JSON document printed by ``cargo metadata --format-version 1`` and
produces one crate record per package, reading license files from the
directory of each package's manifest.
"""

import json
from pathlib import Path

from crate_licenses.models import CrateRecord
from crate_licenses.scanners.base import BaseScanner, collect_license_files


class CargoMetadataScanner(BaseScanner):
    """Scanner for JSON files produced by ``cargo metadata``."""

    def scan(self) -> list[CrateRecord]:
        """Scan the metadata document.

        Returns:
            List of CrateRecord objects in document order.

        Raises:
            FileNotFoundError: If the source file does not exist.
            ValueError: If the source format is invalid or source_path is not set.
        """
        if self.source_path is None:
            raise ValueError("source_path must be set before calling scan()")

        if not self.source_path.exists():
            raise FileNotFoundError(f"cargo metadata file not found: {self.source_path}")

        try:
            data = json.loads(self.source_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {self.source_path}: {e}") from e

        packages = data.get("packages") if isinstance(data, dict) else None
        if not isinstance(packages, list):
            raise ValueError(f"No 'packages' array in {self.source_path}")

        records: list[CrateRecord] = []
        for pkg in packages:
            for required in ("name", "version", "manifest_path"):
                if required not in pkg:
                    raise ValueError(
                        f"Package missing required field '{required}' in {self.source_path}"
                    )

            crate_root = Path(pkg["manifest_path"]).parent
            license_file = pkg.get("license_file")
            records.append(
                CrateRecord(
                    name=pkg["name"],
                    version=pkg["version"],
                    license=pkg.get("license"),
                    license_file=license_file,
                    files=collect_license_files(crate_root, license_file),
                )
            )

        return records

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        """Check if this scanner can handle the given file.

        Args:
            path: Path to check.

        Returns:
            True if the file has a ".json" extension, False otherwise.
        """
        return path.suffix == ".json"

    @property
    def source_name(self) -> str:
        """Return a human-readable name for this scanner's source type.

        Returns:
            The string "cargo metadata".
        """
        return "cargo metadata"
