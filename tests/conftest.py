"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Callable, Optional

import pytest

from crate_licenses.corpus import LicenseCorpus, load_default_corpus
from crate_licenses.models import AcceptedPolicy, CrateRecord, LicenseFile

# MIT text without its copyright line, as found in the bundled corpus.
MIT_BODY = load_default_corpus().get("MIT").text.split("\n\n", 1)[1]


def mit_text(year: str = "2024", holder: str = "Example Author") -> str:
    """Return an MIT license text with a concrete copyright line."""
    return f"Copyright (c) {year} {holder}\n\n{MIT_BODY}"


@pytest.fixture
def corpus() -> LicenseCorpus:
    """Return the bundled license corpus."""
    return load_default_corpus()


@pytest.fixture
def mit_license() -> Callable[..., str]:
    """Return a factory for MIT texts with a given year and holder."""
    return mit_text


@pytest.fixture
def policy() -> AcceptedPolicy:
    """Return a policy accepting MIT and Apache-2.0."""
    return AcceptedPolicy.of(["MIT", "Apache-2.0"])


@pytest.fixture
def make_crate() -> Callable[..., CrateRecord]:
    """Return a factory for in-memory crate records.

    ``license_text`` becomes a file named ``LICENSE`` (or ``file_name``).
    """

    def _make(
        name: str = "package",
        version: str = "0.0.0",
        license: Optional[str] = None,
        license_text: Optional[str] = None,
        file_name: str = "LICENSE",
    ) -> CrateRecord:
        files: tuple[LicenseFile, ...] = ()
        if license_text is not None:
            files = (
                LicenseFile(
                    name=file_name,
                    content=license_text.encode("utf-8"),
                    path=f"{name}/{file_name}",
                ),
            )
        return CrateRecord(name=name, version=version, license=license, files=files)

    return _make


@pytest.fixture
def write_crate(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing a crate directory and returning its manifest.

    Path dependencies are given as ``{name: relative_path}``.
    """

    def _write(
        name: str = "package",
        version: str = "0.0.0",
        license: Optional[str] = None,
        license_text: Optional[str] = None,
        license_file: Optional[str] = None,
        dependencies: Optional[dict[str, str]] = None,
        directory: Optional[Path] = None,
    ) -> Path:
        crate_dir = directory or tmp_path / name
        crate_dir.mkdir(parents=True, exist_ok=True)

        lines = ["[package]", f'name = "{name}"', f'version = "{version}"']
        if license is not None:
            lines.append(f'license = "{license}"')
        if license_file is not None:
            lines.append(f'license-file = "{license_file}"')
        if dependencies:
            lines += ["", "[dependencies]"]
            for dep_name, dep_path in dependencies.items():
                lines.append(f'{dep_name} = {{ path = "{dep_path}" }}')

        manifest = crate_dir / "Cargo.toml"
        manifest.write_text("\n".join(lines) + "\n", encoding="utf-8")
        if license_text is not None:
            (crate_dir / (license_file or "LICENSE")).write_text(
                license_text, encoding="utf-8"
            )
        return manifest

    return _write
