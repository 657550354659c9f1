"""License corpus, text matching and corpus fetching.

This package provides the canonical license texts used to identify license
files, the fuzzy matcher that performs the identification, and a fetcher
for refreshing corpora from the SPDX license list.
"""

from crate_licenses.corpus.matcher import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    CorpusMatch,
    CorpusMatcher,
)
from crate_licenses.corpus.store import CorpusEntry, LicenseCorpus, load_default_corpus

__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "CorpusEntry",
    "CorpusMatch",
    "CorpusMatcher",
    "LicenseCorpus",
    "load_default_corpus",
]
