"""Fuzzy identification of license texts against the license corpus.

License files in the wild differ from the canonical texts in ways that do not
change their legal meaning: copyright years and holders, line wrapping,
punctuation and letter case. The matcher therefore compares texts as
multisets of word shingles after normalization, scoring each corpus entry with
the Dice coefficient::

    confidence = 2 * |input & entry| / (|input| + |entry|)

Entries below the confidence threshold are never reported, so free-form
copyright notices without license boilerplate produce no match.

Files that concatenate several licenses are handled by peeling: once the best
entry is found, its shingles are removed from the input and the remainder is
matched again while enough of it is left. Matches keep the order in which
they were found, so the entry closest to the whole file always comes first.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from crate_licenses.corpus.store import CorpusEntry, LicenseCorpus

logger = logging.getLogger(__name__)

# Minimum Dice score for a corpus entry to be reported as a match.
DEFAULT_CONFIDENCE_THRESHOLD = 0.8

# Number of consecutive words per shingle.
SHINGLE_SIZE = 2

# Shingles that must remain after a match before another license is sought.
MIN_REMAINDER_SHINGLES = 16

# Upper bound on licenses recovered from a single file.
MAX_MATCHES_PER_TEXT = 4

_COPYRIGHT_LINE_RE = re.compile(r"^\s*(?:copyright\b|\(c\)|©)", re.IGNORECASE)
_PLACEHOLDER_RE = re.compile(r"<[^<>\n]*>")
_WORD_RE = re.compile(r"[a-z0-9]+")

# Spelling variants with identical meaning.
_EQUIVALENT_WORDS = {
    "licence": "license",
    "licences": "licenses",
    "licenced": "licensed",
    "authorised": "authorized",
    "organisation": "organization",
}

Fingerprint = Counter


@dataclass(frozen=True)
class CorpusMatch:
    """A corpus entry identified in a text.

    Attributes:
        identifier: SPDX identifier of the entry.
        name: Human-readable license name.
        confidence: Dice score in [0, 1].
    """

    identifier: str
    name: str
    confidence: float


def tokenize(text: str) -> list[str]:
    """Normalize license text into a list of comparable words.

    Copyright lines and ``<placeholder>`` fields are dropped, case and
    punctuation are discarded, and spelling variants are unified.
    """
    lines = [line for line in text.splitlines() if not _COPYRIGHT_LINE_RE.match(line)]
    body = _PLACEHOLDER_RE.sub(" ", "\n".join(lines)).casefold()
    return [_EQUIVALENT_WORDS.get(word, word) for word in _WORD_RE.findall(body)]


def fingerprint(text: str, size: int = SHINGLE_SIZE) -> Fingerprint:
    """Return the shingle multiset of a text."""
    words = tokenize(text)
    if not words:
        return Counter()
    if len(words) < size:
        return Counter([tuple(words)])
    return Counter(tuple(words[i : i + size]) for i in range(len(words) - size + 1))


def dice(a: Fingerprint, b: Fingerprint) -> float:
    """Return the Dice coefficient of two shingle multisets."""
    total = sum(a.values()) + sum(b.values())
    if total == 0:
        return 0.0
    overlap = sum((a & b).values())
    return 2.0 * overlap / total


class CorpusMatcher:
    """Identifies license texts by similarity to a license corpus.

    Fingerprints of the corpus entries are computed once, so a matcher can be
    shared by reference across threads.

    Attributes:
        corpus: The corpus matched against.
        threshold: Minimum confidence for a match to be reported.
    """

    def __init__(
        self,
        corpus: LicenseCorpus,
        threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> None:
        """Initialize the matcher.

        Args:
            corpus: Corpus of canonical license texts.
            threshold: Minimum confidence in (0, 1].

        Raises:
            ValueError: If the threshold is out of range.
        """
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"confidence threshold must be in (0, 1], got {threshold}")
        self.corpus = corpus
        self.threshold = threshold
        self._fingerprints: list[tuple[CorpusEntry, Fingerprint]] = [
            (entry, fingerprint(entry.text)) for entry in corpus
        ]

    def match(self, text: str) -> list[CorpusMatch]:
        """Identify the licenses contained in a text.

        Args:
            text: Raw license file text.

        Returns:
            Matches in the order they were found, the best match for the whole
            text first. Empty when nothing clears the threshold.
        """
        remaining = fingerprint(text)
        matches: list[CorpusMatch] = []
        seen: set[str] = set()

        while len(matches) < MAX_MATCHES_PER_TEXT:
            needed = MIN_REMAINDER_SHINGLES if matches else 1
            if sum(remaining.values()) < needed:
                break

            best = self._best(remaining, exclude=seen)
            if best is None:
                break
            entry, entry_fingerprint, score = best
            if score < self.threshold:
                logger.debug(
                    "Best corpus candidate %s scored %.3f, below threshold %.2f",
                    entry.identifier,
                    score,
                    self.threshold,
                )
                break

            matches.append(
                CorpusMatch(
                    identifier=entry.identifier,
                    name=entry.name,
                    confidence=round(score, 4),
                )
            )
            seen.add(entry.identifier)
            remaining = remaining - entry_fingerprint

        return matches

    def best(self, text: str) -> Optional[CorpusMatch]:
        """Return the highest-confidence match for a text, if any."""
        matches = self.match(text)
        return matches[0] if matches else None

    def _best(
        self, remaining: Fingerprint, exclude: set[str]
    ) -> Optional[tuple[CorpusEntry, Fingerprint, float]]:
        """Score every entry and pick the best one.

        Ties on confidence go to the longer entry, then to the lower identifier.
        """
        scored = [
            (entry, entry_fingerprint, dice(remaining, entry_fingerprint))
            for entry, entry_fingerprint in self._fingerprints
            if entry.identifier not in exclude
        ]
        if not scored:
            return None
        scored.sort(
            key=lambda item: (-item[2], -sum(item[1].values()), item[0].identifier)
        )
        return scored[0]
