"""Policy engine evaluating every crate of a dependency graph.

Each crate moves through extraction, parsing and the policy check and ends in
one of four states:

- NO_EXPRESSION: no license could be resolved. Warning; crate left out.
- PARSE_FAILED: the expression is malformed or names an unknown license.
  Warning; crate left out.
- REJECTED: the expression is not satisfied by the accepted licenses. Error;
  the whole run fails.
- ACCEPTED: the crate's licenses are included in the report.

Missing or unparsable data never fails a run on its own; a single rejected
crate always does. All crates are evaluated even after a rejection so the
diagnostics of a failing run are complete.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

from crate_licenses.aggregator import aggregate
from crate_licenses.corpus import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    CorpusMatcher,
    LicenseCorpus,
    load_default_corpus,
)
from crate_licenses.expression import (
    ParseError,
    license_ids,
    licenses_satisfying,
    parse,
    satisfies,
)
from crate_licenses.extractor import LicenseExtractor
from crate_licenses.models import (
    AcceptedPolicy,
    CrateEvaluation,
    CrateRecord,
    CrateState,
    Diagnostic,
    EvaluationResult,
    LicenseCandidate,
    LicenseMatch,
    Provenance,
    ResolvedLicense,
    Severity,
)

logger = logging.getLogger(__name__)

NO_LICENSE_MESSAGE = (
    "unable to synthesize license expression for '{crate}': "
    "no 'license' specified, and no license files were found"
)
PARSE_FAILED_MESSAGE = "unable to parse license expression for '{crate}': {expression}"
# Also emitted when the LICENSE file resolved successfully.
NO_LICENSE_FIELD_MESSAGE = "crate '{crate}' doesn't have a license field"
REJECTED_MESSAGE = "failed to satisfy license requirements for '{crate}': {expression}"


class PolicyEngine:
    """Evaluates crates against an accepted-license policy.

    The corpus, matcher and policy are read-only once constructed, so crates
    can be evaluated on a thread pool.

    Attributes:
        policy: Accepted licenses.
        corpus: Corpus used for file matching and canonical texts.
        extractor: Extractor resolving each crate's expression.
        max_workers: Number of worker threads; 1 evaluates sequentially.
    """

    def __init__(
        self,
        policy: AcceptedPolicy,
        corpus: Optional[LicenseCorpus] = None,
        threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        max_workers: int = 1,
        extractor: Optional[LicenseExtractor] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            policy: Accepted licenses.
            corpus: License corpus; the bundled corpus when omitted.
            threshold: Minimum matcher confidence for license files.
            max_workers: Number of worker threads.
            extractor: Optional custom extractor. If not provided, one is built
                over the corpus with the given threshold.

        Raises:
            ValueError: If max_workers is below 1.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.policy = policy
        self.corpus = corpus if corpus is not None else load_default_corpus()
        self.extractor = extractor or LicenseExtractor(
            CorpusMatcher(self.corpus, threshold=threshold)
        )
        self.max_workers = max_workers

    def evaluate(self, crates: Iterable[CrateRecord]) -> EvaluationResult:
        """Evaluate every crate and aggregate the accepted ones.

        Args:
            crates: Crates of the dependency graph.

        Returns:
            Report, diagnostics and per-crate outcomes, all in input order.
        """
        crates = list(crates)
        logger.info("Evaluating %d crates", len(crates))

        if self.max_workers > 1 and len(crates) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self.evaluate_crate, crates))
        else:
            outcomes = [self.evaluate_crate(crate) for crate in crates]

        evaluations: list[CrateEvaluation] = []
        diagnostics: list[Diagnostic] = []
        for evaluation, crate_diagnostics in outcomes:
            evaluations.append(evaluation)
            diagnostics.extend(crate_diagnostics)

        report = aggregate(
            resolved
            for evaluation in evaluations
            if evaluation.state is CrateState.ACCEPTED
            for resolved in evaluation.licenses
        )

        result = EvaluationResult(
            report=report, diagnostics=diagnostics, evaluations=evaluations
        )
        logger.info(
            "Evaluation complete: %d accepted, %d rejected, %d warnings",
            sum(1 for e in evaluations if e.state is CrateState.ACCEPTED),
            sum(1 for e in evaluations if e.state is CrateState.REJECTED),
            len(result.warnings),
        )
        return result

    def evaluate_crate(
        self, crate: CrateRecord
    ) -> tuple[CrateEvaluation, list[Diagnostic]]:
        """Run a single crate through extraction, parsing and the policy check.

        Returns:
            The crate's evaluation and the diagnostics it produced.
        """
        diagnostics: list[Diagnostic] = []

        def warn(message: str) -> None:
            diagnostics.append(Diagnostic(Severity.WARNING, message, crate.display))

        candidate = self.extractor.resolve(crate)
        if candidate.expression is None:
            warn(NO_LICENSE_MESSAGE.format(crate=crate.display))
            return self._finish(crate, candidate, CrateState.NO_EXPRESSION), diagnostics

        if candidate.provenance is Provenance.RECOVERED_FROM_FILE:
            warn(NO_LICENSE_FIELD_MESSAGE.format(crate=crate.display))

        try:
            expression = parse(candidate.expression)
        except ParseError as e:
            logger.debug("%s: %s", crate.display, e)
            warn(
                PARSE_FAILED_MESSAGE.format(
                    crate=crate.display, expression=candidate.expression
                )
            )
            return self._finish(crate, candidate, CrateState.PARSE_FAILED), diagnostics

        if not satisfies(expression, self.policy):
            logger.debug(
                "%s: not accepted: %s",
                crate.display,
                ", ".join(i for i in license_ids(expression) if i not in self.policy),
            )
            diagnostics.append(
                Diagnostic(
                    Severity.ERROR,
                    REJECTED_MESSAGE.format(
                        crate=crate.display, expression=candidate.expression
                    ),
                    crate.display,
                )
            )
            return self._finish(crate, candidate, CrateState.REJECTED), diagnostics

        identifiers = licenses_satisfying(expression, self.policy)
        evaluation = self._finish(crate, candidate, CrateState.ACCEPTED)
        evaluation.licenses = self._resolved_licenses(candidate, identifiers)
        return evaluation, diagnostics

    def _finish(
        self, crate: CrateRecord, candidate: LicenseCandidate, state: CrateState
    ) -> CrateEvaluation:
        logger.debug("%s: %s", crate.display, state.value)
        return CrateEvaluation(crate=crate, candidate=candidate, state=state)

    def _resolved_licenses(
        self, candidate: LicenseCandidate, identifiers: list[str]
    ) -> list[ResolvedLicense]:
        """Pick the text to disclose for each accepted identifier.

        The crate's own matched LICENSE file is preferred, then the corpus's
        canonical text.
        """
        if candidate.provenance is Provenance.DECLARED_FIELD:
            file_matches = self.extractor.file_matches(candidate.crate)
        else:
            file_matches = candidate.matches

        resolved = []
        for identifier in identifiers:
            match = _find_match(file_matches, identifier)
            if match is not None:
                source_path, text = match.source_path, match.text
            else:
                entry = self.corpus.get(identifier)
                source_path, text = "", entry.text if entry is not None else ""
                if entry is None:
                    logger.debug("No license text available for %s", identifier)

            resolved.append(
                ResolvedLicense(
                    crate=candidate.crate.display,
                    identifier=identifier,
                    name=self.corpus.display_name(identifier),
                    source_path=source_path,
                    text=text,
                )
            )
        return resolved


def _find_match(matches: list[LicenseMatch], identifier: str) -> Optional[LicenseMatch]:
    folded = identifier.casefold()
    for match in matches:
        if match.identifier.casefold() == folded:
            return match
    return None


def evaluate(
    crates: Iterable[CrateRecord],
    policy: AcceptedPolicy,
    corpus: Optional[LicenseCorpus] = None,
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    max_workers: int = 1,
) -> EvaluationResult:
    """Evaluate a dependency graph against a policy.

    Convenience wrapper around :class:`PolicyEngine`.
    """
    engine = PolicyEngine(
        policy, corpus=corpus, threshold=threshold, max_workers=max_workers
    )
    return engine.evaluate(crates)
