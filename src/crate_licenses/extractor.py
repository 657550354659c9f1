"""License expression extraction for individual crates.

The extractor decides which license expression a crate carries and where it
came from:

1. A non-empty declared ``license`` field wins and is used verbatim. License
   files are not consulted to build the expression.
2. Otherwise the file named exactly ``LICENSE`` at the crate root is matched
   against the corpus. Files under any other name, including the one named by
   the crate's ``license-file`` field, are not considered.
3. An absent, empty or undecodable ``LICENSE`` file leaves the crate without
   an expression.
"""

import logging
from typing import Optional

from crate_licenses.corpus.matcher import CorpusMatcher
from crate_licenses.models import (
    CrateRecord,
    LicenseCandidate,
    LicenseFile,
    LicenseMatch,
    Provenance,
)

logger = logging.getLogger(__name__)

# Only a file with exactly this name is used to recover a license.
# Known limitation: common alternatives such as LICENSE-MIT, LICENSE.txt or
# COPYING are ignored.
CANONICAL_LICENSE_FILENAME = "LICENSE"


class LicenseExtractor:
    """Resolves the license expression of a crate.

    Attributes:
        matcher: Corpus matcher used to identify license file texts.
    """

    def __init__(self, matcher: CorpusMatcher) -> None:
        """Initialize the extractor.

        Args:
            matcher: Corpus matcher used to identify license file texts.
        """
        self.matcher = matcher

    def resolve(self, crate: CrateRecord) -> LicenseCandidate:
        """Determine the license expression of a crate.

        Args:
            crate: The crate to resolve.

        Returns:
            A candidate whose expression is None when nothing could be resolved.
        """
        if crate.license and crate.license.strip():
            logger.debug("%s declares license %s", crate.display, crate.license)
            return LicenseCandidate(
                crate=crate,
                expression=crate.license,
                provenance=Provenance.DECLARED_FIELD,
            )

        license_file = self._canonical_file(crate)
        text = self._read_text(crate, license_file) if license_file else None
        if license_file is None or text is None:
            logger.debug("%s has no usable %s file", crate.display, CANONICAL_LICENSE_FILENAME)
            return LicenseCandidate(
                crate=crate, expression=None, provenance=Provenance.NONE
            )

        matches = self._match(license_file, text)
        if not matches:
            logger.debug(
                "%s: %s matched no known license", crate.display, license_file.source_path
            )
            return LicenseCandidate(
                crate=crate,
                expression=None,
                provenance=Provenance.RECOVERED_FROM_FILE,
                raw_text=text,
                source_path=license_file.source_path,
            )

        logger.debug(
            "%s: recovered %s from %s (confidence %.3f)",
            crate.display,
            matches[0].identifier,
            license_file.source_path,
            matches[0].confidence,
        )
        return LicenseCandidate(
            crate=crate,
            expression=matches[0].identifier,
            provenance=Provenance.RECOVERED_FROM_FILE,
            matches=matches,
            raw_text=text,
            source_path=license_file.source_path,
        )

    def file_matches(self, crate: CrateRecord) -> list[LicenseMatch]:
        """Match the crate's LICENSE file regardless of its declared license.

        Used to find the crate's own text for licenses it declares. The
        result never influences the crate's expression.

        Returns:
            Matches for the LICENSE file, empty if it is absent or unrecognized.
        """
        license_file = self._canonical_file(crate)
        if license_file is None:
            return []
        text = self._read_text(crate, license_file)
        if text is None:
            return []
        return self._match(license_file, text)

    def _canonical_file(self, crate: CrateRecord) -> Optional[LicenseFile]:
        for license_file in crate.files:
            if license_file.name == CANONICAL_LICENSE_FILENAME:
                return license_file
        return None

    def _read_text(self, crate: CrateRecord, license_file: LicenseFile) -> Optional[str]:
        """Decode a license file, treating empty and unreadable files as absent."""
        if license_file.content is None:
            logger.debug("%s: %s is unreadable", crate.display, license_file.source_path)
            return None
        try:
            text = license_file.content.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("%s: %s is not UTF-8", crate.display, license_file.source_path)
            return None
        if not text.strip():
            return None
        return text

    def _match(self, license_file: LicenseFile, text: str) -> list[LicenseMatch]:
        return [
            LicenseMatch(
                identifier=match.identifier,
                name=match.name,
                source_path=license_file.source_path,
                text=text,
                confidence=match.confidence,
            )
            for match in self.matcher.match(text)
        ]
