"""Core data models for crate_licenses.

This module defines the data structures that flow through the license
resolution pipeline: crate records coming from the dependency graph, the
license candidates produced for them, the acceptance policy, and the
aggregated report rows handed to renderers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional


@dataclass(frozen=True)
class LicenseFile:
    """A license-like file found at a crate root.

    Attributes:
        name: File name relative to the crate root (e.g., "LICENSE").
        content: Raw file bytes, or None if the file could not be read.
        path: Optional full path of the file, used as the report source path.
    """

    name: str
    content: Optional[bytes]
    path: Optional[str] = None

    @property
    def source_path(self) -> str:
        """Return the path reported for text taken from this file."""
        return self.path or self.name


@dataclass(frozen=True)
class CrateRecord:
    """Immutable description of one crate in the dependency graph.

    Frozen for hashability so records can key dictionaries and sets.

    Attributes:
        name: Crate name (e.g., "serde").
        version: Crate version string (e.g., "1.0.188").
        license: Declared SPDX license expression, if any.
        license_file: Declared license file path relative to the crate root.
        files: License-like files physically present at the crate root.
    """

    name: str
    version: str
    license: Optional[str] = None
    license_file: Optional[str] = None
    files: tuple[LicenseFile, ...] = ()

    @property
    def display(self) -> str:
        """Return the "<name> <version>" form used in diagnostics."""
        return f"{self.name} {self.version}"


class Provenance(str, Enum):
    """Where a crate's license expression came from."""

    DECLARED_FIELD = "declared-field"
    RECOVERED_FROM_FILE = "recovered-from-file"
    NONE = "none"


@dataclass(frozen=True)
class LicenseMatch:
    """A corpus match for the text of a license file.

    Attributes:
        identifier: SPDX identifier of the matched corpus entry.
        name: Human-readable license name.
        source_path: Path of the file the text was read from.
        text: Full text of the file.
        confidence: Similarity score in [0, 1].
    """

    identifier: str
    name: str
    source_path: str
    text: str
    confidence: float


@dataclass
class LicenseCandidate:
    """The license expression resolved for a crate, with its provenance.

    Attributes:
        crate: The crate the candidate belongs to.
        expression: Resolved expression string, or None when unresolved.
        provenance: Origin of the expression.
        matches: Corpus matches recovered from the license file, in the order
            the matcher found them.
        raw_text: Text of the license file consulted, kept for audit even when
            it produced no match.
        source_path: Path of the license file consulted, if any.
    """

    crate: CrateRecord
    expression: Optional[str]
    provenance: Provenance
    matches: list[LicenseMatch] = field(default_factory=list)
    raw_text: Optional[str] = None
    source_path: Optional[str] = None


@dataclass(frozen=True)
class AcceptedPolicy:
    """The set of license identifiers a build is allowed to depend on.

    Membership is case-insensitive, matching SPDX identifier semantics.

    Attributes:
        accepted: Accepted license identifiers as configured.
    """

    accepted: frozenset[str] = frozenset()
    _folded: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_folded", frozenset(a.casefold() for a in self.accepted)
        )

    @classmethod
    def of(cls, identifiers: Iterable[str]) -> "AcceptedPolicy":
        """Build a policy from any iterable, collapsing duplicates."""
        return cls(accepted=frozenset(i.strip() for i in identifiers if i.strip()))

    def __contains__(self, identifier: object) -> bool:
        if not isinstance(identifier, str):
            return False
        return identifier.casefold() in self._folded

    def __len__(self) -> int:
        return len(self.accepted)


@dataclass(frozen=True)
class OverviewRow:
    """One license in the report overview.

    Attributes:
        count: Number of distinct crates resolving to this license.
        name: Human-readable license name.
        id: SPDX identifier.
    """

    count: int
    name: str
    id: str


@dataclass(frozen=True)
class LicenseTextRow:
    """One distinct license text to disclose.

    Attributes:
        name: Human-readable license name.
        id: SPDX identifier.
        source_path: File the text came from, empty for canonical corpus text.
        text: Full license text.
        used_by: "<name> <version>" of each crate using this exact text.
    """

    name: str
    id: str
    source_path: str
    text: str
    used_by: tuple[str, ...] = ()


@dataclass
class Report:
    """Report model consumed by reporters."""

    overview: list[OverviewRow] = field(default_factory=list)
    licenses: list[LicenseTextRow] = field(default_factory=list)

    def context(self) -> dict[str, list]:
        """Return the template context for this report."""
        return {"overview": self.overview, "licenses": self.licenses}


class Severity(str, Enum):
    """Diagnostic severity."""

    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """A message produced while evaluating the graph.

    Attributes:
        severity: WARNING for degraded crates, ERROR for policy violations.
        message: Fixed-form, matchable message text.
        crate: "<name> <version>" of the crate concerned, if any.
    """

    severity: Severity
    message: str
    crate: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.message}"


class CrateState(str, Enum):
    """Terminal state of a crate's evaluation."""

    NO_EXPRESSION = "no-expression"
    PARSE_FAILED = "parse-failed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ResolvedLicense:
    """One accepted license of one accepted crate, ready for aggregation.

    Attributes:
        crate: "<name> <version>" of the crate.
        identifier: SPDX identifier.
        name: Human-readable license name.
        source_path: File the text came from, empty for canonical corpus text.
        text: License text to disclose.
    """

    crate: str
    identifier: str
    name: str
    source_path: str
    text: str


@dataclass
class CrateEvaluation:
    """Outcome of evaluating a single crate."""

    crate: CrateRecord
    candidate: LicenseCandidate
    state: CrateState
    licenses: list[ResolvedLicense] = field(default_factory=list)


@dataclass
class EvaluationResult:
    """Outcome of evaluating a whole dependency graph.

    Attributes:
        report: Aggregated report rows for all accepted crates.
        diagnostics: Warnings and errors, in crate order.
        evaluations: Per-crate outcomes, in input order.
    """

    report: Report
    diagnostics: list[Diagnostic] = field(default_factory=list)
    evaluations: list[CrateEvaluation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """Return True unless at least one crate was rejected."""
        return not any(e.state is CrateState.REJECTED for e in self.evaluations)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]
