"""Read-only corpus of canonical license texts.

A corpus directory contains an ``index.json`` describing each license and one
plain text file per license::

    {
      "version": "3.24",
      "licenses": {
        "MIT": {"name": "MIT License", "file": "MIT.txt"}
      }
    }

The package bundles a small corpus of common permissive licenses; larger
corpora can be fetched from the SPDX license list with
:class:`crate_licenses.corpus.fetch.SPDXCorpusFetcher`.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from importlib.resources import files
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

# Common SPDX identifiers mapped to human-readable names, used when a
# declared identifier has no corpus entry.
# Based on https://spdx.org/licenses/
SPDX_NAMES = {
    "MIT": "MIT License",
    "MIT-0": "MIT No Attribution",
    "Apache-2.0": "Apache License 2.0",
    "GPL-3.0-only": "GNU General Public License v3.0 only",
    "GPL-3.0-or-later": "GNU General Public License v3.0 or later",
    "GPL-2.0-only": "GNU General Public License v2.0 only",
    "GPL-2.0-or-later": "GNU General Public License v2.0 or later",
    "LGPL-3.0-only": "GNU Lesser General Public License v3.0 only",
    "LGPL-3.0-or-later": "GNU Lesser General Public License v3.0 or later",
    "LGPL-2.1-only": "GNU Lesser General Public License v2.1 only",
    "LGPL-2.1-or-later": "GNU Lesser General Public License v2.1 or later",
    "BSD-3-Clause": 'BSD 3-Clause "New" or "Revised" License',
    "BSD-2-Clause": 'BSD 2-Clause "Simplified" License',
    "0BSD": "BSD Zero Clause License",
    "ISC": "ISC License",
    "MPL-2.0": "Mozilla Public License 2.0",
    "EPL-2.0": "Eclipse Public License 2.0",
    "AGPL-3.0-only": "GNU Affero General Public License v3.0 only",
    "AGPL-3.0-or-later": "GNU Affero General Public License v3.0 or later",
    "BSL-1.0": "Boost Software License 1.0",
    "CC0-1.0": "Creative Commons Zero v1.0 Universal",
    "Unicode-3.0": "Unicode License v3",
    "Unicode-DFS-2016": "Unicode License Agreement - Data Files and Software (2016)",
    "Unlicense": "The Unlicense",
    "WTFPL": "Do What The F*ck You Want To Public License",
    "Zlib": "zlib License",
}

INDEX_FILENAME = "index.json"

CorpusPath = Union[Path, Traversable]


@dataclass(frozen=True)
class CorpusEntry:
    """A canonical license text.

    Attributes:
        identifier: SPDX identifier (e.g., "MIT").
        name: Human-readable license name (e.g., "MIT License").
        text: Canonical license text.
    """

    identifier: str
    name: str
    text: str


class LicenseCorpus:
    """An immutable, versioned collection of canonical license texts.

    Entries keep their load order. Identifier lookups are case-insensitive.

    Attributes:
        version: Version of the license list the texts were taken from.
    """

    def __init__(
        self, entries: Iterable[CorpusEntry], version: Optional[str] = None
    ) -> None:
        """Initialize the corpus.

        Args:
            entries: Corpus entries; later duplicates of an identifier are ignored.
            version: Optional license list version.
        """
        self.version = version
        self._entries: dict[str, CorpusEntry] = {}
        for entry in entries:
            key = entry.identifier.casefold()
            if key in self._entries:
                logger.debug("Ignoring duplicate corpus entry %s", entry.identifier)
                continue
            self._entries[key] = entry

    def __iter__(self) -> Iterator[CorpusEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and identifier.casefold() in self._entries

    def get(self, identifier: str) -> Optional[CorpusEntry]:
        """Return the entry for an identifier, or None if unknown."""
        return self._entries.get(identifier.casefold())

    def display_name(self, identifier: str) -> str:
        """Return the human-readable name for a license identifier.

        Falls back to the built-in SPDX name table, then to the identifier.
        """
        entry = self.get(identifier)
        if entry is not None:
            return entry.name
        return SPDX_NAMES.get(identifier, identifier)

    @classmethod
    def load(cls, directory: CorpusPath) -> "LicenseCorpus":
        """Load a corpus directory.

        Args:
            directory: Directory (or package resource) containing index.json.

        Returns:
            The loaded corpus.

        Raises:
            FileNotFoundError: If the index or a referenced text file is missing.
            ValueError: If the index is malformed.
        """
        index_file = directory.joinpath(INDEX_FILENAME)
        if not index_file.is_file():
            raise FileNotFoundError(f"Corpus index not found: {index_file}")

        try:
            index = json.loads(index_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {index_file}: {e}") from e

        licenses = index.get("licenses")
        if not isinstance(licenses, dict):
            raise ValueError(f"Corpus index {index_file} has no 'licenses' table")

        entries = []
        for identifier, info in licenses.items():
            if not isinstance(info, dict) or "file" not in info:
                raise ValueError(
                    f"Corpus entry '{identifier}' in {index_file} has no 'file'"
                )
            text_file = directory.joinpath(info["file"])
            if not text_file.is_file():
                raise FileNotFoundError(f"Corpus text not found: {text_file}")
            entries.append(
                CorpusEntry(
                    identifier=identifier,
                    name=info.get("name") or SPDX_NAMES.get(identifier, identifier),
                    text=text_file.read_text(encoding="utf-8"),
                )
            )

        logger.debug("Loaded %d corpus entries from %s", len(entries), directory)
        return cls(entries, version=index.get("version"))

    def save(self, directory: Path) -> Path:
        """Write the corpus to a directory in the format read by load().

        Args:
            directory: Target directory, created if missing.

        Returns:
            Path of the written index file.
        """
        directory.mkdir(parents=True, exist_ok=True)
        licenses = {}
        for entry in self:
            filename = f"{entry.identifier}.txt"
            (directory / filename).write_text(entry.text, encoding="utf-8")
            licenses[entry.identifier] = {"name": entry.name, "file": filename}

        index_path = directory / INDEX_FILENAME
        index_path.write_text(
            json.dumps({"version": self.version, "licenses": licenses}, indent=2)
            + "\n",
            encoding="utf-8",
        )
        return index_path


@lru_cache(maxsize=1)
def load_default_corpus() -> LicenseCorpus:
    """Load the corpus bundled with the package (cached)."""
    return LicenseCorpus.load(files("crate_licenses.corpus").joinpath("data"))
