"""Tests for the license corpus store."""

import json
from pathlib import Path

import pytest

from crate_licenses.corpus import CorpusEntry, LicenseCorpus, load_default_corpus

BUNDLED_IDS = {
    "MIT",
    "MIT-0",
    "Apache-2.0",
    "BSD-2-Clause",
    "BSD-3-Clause",
    "ISC",
    "0BSD",
    "Zlib",
    "Unlicense",
    "BSL-1.0",
}


class TestLicenseCorpus:
    """Test suite for LicenseCorpus."""

    @pytest.fixture
    def small_corpus(self) -> LicenseCorpus:
        """Return a two-entry corpus."""
        return LicenseCorpus(
            [
                CorpusEntry("MIT", "MIT License", "mit text"),
                CorpusEntry("ISC", "ISC License", "isc text"),
            ],
            version="3.24",
        )

    def test_lookup_is_case_insensitive(self, small_corpus: LicenseCorpus) -> None:
        """Test that identifiers are looked up regardless of case."""
        assert "mit" in small_corpus
        assert small_corpus.get("Mit").identifier == "MIT"
        assert small_corpus.get("GPL-3.0-only") is None

    def test_iteration_keeps_order(self, small_corpus: LicenseCorpus) -> None:
        """Test that entries iterate in insertion order."""
        assert [e.identifier for e in small_corpus] == ["MIT", "ISC"]
        assert len(small_corpus) == 2

    def test_duplicate_entries_keep_first(self) -> None:
        """Test that a later duplicate identifier is ignored."""
        corpus = LicenseCorpus(
            [CorpusEntry("MIT", "first", "a"), CorpusEntry("mit", "second", "b")]
        )
        assert len(corpus) == 1
        assert corpus.get("MIT").name == "first"

    def test_display_name_fallbacks(self, small_corpus: LicenseCorpus) -> None:
        """Test name lookup through corpus, SPDX table and identifier."""
        assert small_corpus.display_name("MIT") == "MIT License"
        assert small_corpus.display_name("MPL-2.0") == "Mozilla Public License 2.0"
        assert small_corpus.display_name("LicenseRef-Custom") == "LicenseRef-Custom"

    def test_save_and_load(self, small_corpus: LicenseCorpus, tmp_path: Path) -> None:
        """Test that a saved corpus loads back with the same content."""
        index_path = small_corpus.save(tmp_path / "corpus")

        assert index_path.name == "index.json"
        assert (tmp_path / "corpus" / "MIT.txt").read_text() == "mit text"

        loaded = LicenseCorpus.load(tmp_path / "corpus")
        assert loaded.version == "3.24"
        assert [(e.identifier, e.name, e.text) for e in loaded] == [
            ("MIT", "MIT License", "mit text"),
            ("ISC", "ISC License", "isc text"),
        ]

    def test_load_missing_index(self, tmp_path: Path) -> None:
        """Test that a directory without index.json is rejected."""
        with pytest.raises(FileNotFoundError, match="index"):
            LicenseCorpus.load(tmp_path)

    def test_load_missing_text_file(self, tmp_path: Path) -> None:
        """Test that an index entry pointing to a missing file is rejected."""
        (tmp_path / "index.json").write_text(
            json.dumps({"licenses": {"MIT": {"file": "MIT.txt"}}})
        )
        with pytest.raises(FileNotFoundError, match="MIT.txt"):
            LicenseCorpus.load(tmp_path)

    def test_load_invalid_json(self, tmp_path: Path) -> None:
        """Test that a malformed index raises ValueError."""
        (tmp_path / "index.json").write_text("{not json")
        with pytest.raises(ValueError, match="Invalid JSON"):
            LicenseCorpus.load(tmp_path)

    def test_load_without_licenses_table(self, tmp_path: Path) -> None:
        """Test that an index without a licenses table raises ValueError."""
        (tmp_path / "index.json").write_text(json.dumps({"version": "1"}))
        with pytest.raises(ValueError, match="licenses"):
            LicenseCorpus.load(tmp_path)

    def test_load_defaults_missing_name(self, tmp_path: Path) -> None:
        """Test that an entry without a name gets its SPDX name."""
        (tmp_path / "index.json").write_text(
            json.dumps({"licenses": {"Zlib": {"file": "Zlib.txt"}}})
        )
        (tmp_path / "Zlib.txt").write_text("zlib text")

        corpus = LicenseCorpus.load(tmp_path)

        assert corpus.get("Zlib").name == "zlib License"
        assert corpus.version is None


class TestDefaultCorpus:
    """Test suite for the bundled corpus."""

    def test_bundled_identifiers(self) -> None:
        """Test that the bundled corpus holds the common permissive licenses."""
        corpus = load_default_corpus()
        assert {e.identifier for e in corpus} == BUNDLED_IDS
        assert corpus.version

    def test_default_corpus_is_cached(self) -> None:
        """Test that repeated loads return the same object."""
        assert load_default_corpus() is load_default_corpus()

    def test_mit_text_has_placeholders(self) -> None:
        """Test that the canonical MIT text keeps its template fields."""
        text = load_default_corpus().get("MIT").text
        assert text.startswith("Copyright (c) <year> <copyright holders>\n\n")
        assert "Permission is hereby granted" in text
