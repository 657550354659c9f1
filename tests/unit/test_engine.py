"""Tests for the policy engine."""

from typing import Callable

import pytest

from crate_licenses.corpus import CorpusEntry, LicenseCorpus
from crate_licenses.engine import PolicyEngine, evaluate
from crate_licenses.models import AcceptedPolicy, CrateState, Severity

SYNTHESIZE_WARNING = (
    "unable to synthesize license expression for 'package 0.0.0': "
    "no 'license' specified, and no license files were found"
)


@pytest.fixture
def mit_policy() -> AcceptedPolicy:
    """Return a policy accepting only MIT."""
    return AcceptedPolicy.of(["MIT"])


@pytest.fixture
def engine(mit_policy: AcceptedPolicy) -> PolicyEngine:
    """Return an engine over the bundled corpus."""
    return PolicyEngine(mit_policy)


class TestDeclaredLicenses:
    """Crates that declare a license field."""

    def test_declared_without_file_uses_canonical_text(
        self, engine: PolicyEngine, make_crate: Callable, corpus: LicenseCorpus
    ) -> None:
        """Test that the corpus text is disclosed when no file is shipped."""
        result = engine.evaluate([make_crate(license="MIT")])

        assert result.passed
        assert result.diagnostics == []
        assert [(r.count, r.name, r.id) for r in result.report.overview] == [
            (1, "MIT License", "MIT")
        ]
        [row] = result.report.licenses
        assert row.source_path == ""
        assert row.text == corpus.get("MIT").text
        assert row.used_by == ("package 0.0.0",)

    def test_declared_with_custom_file_uses_file_text(
        self, engine: PolicyEngine, make_crate: Callable, mit_license: Callable
    ) -> None:
        """Test that a crate's own LICENSE text is disclosed."""
        text = mit_license("2015", "Custom Holder")

        result = engine.evaluate([make_crate(license="MIT", license_text=text)])

        assert result.diagnostics == []
        [row] = result.report.licenses
        assert row.text == text
        assert row.source_path == "package/LICENSE"

    def test_two_crates_with_different_texts(
        self, engine: PolicyEngine, make_crate: Callable, mit_license: Callable
    ) -> None:
        """Test that distinct texts are kept under one overview row."""
        crates = [
            make_crate(name="a", license="MIT", license_text=mit_license("2001", "A")),
            make_crate(name="b", license="MIT", license_text=mit_license("2002", "B")),
        ]

        result = engine.evaluate(crates)

        assert len(result.report.overview) == 1
        assert result.report.overview[0].count == 2
        assert len(result.report.licenses) == 2

    def test_second_accepted_license(self, make_crate: Callable, policy: AcceptedPolicy) -> None:
        """Test that a dependency under another accepted license adds a row."""
        crates = [
            make_crate(name="a", license="MIT"),
            make_crate(name="b", license="Apache-2.0"),
        ]

        result = PolicyEngine(policy).evaluate(crates)

        assert [row.id for row in result.report.overview] == ["MIT", "Apache-2.0"]

    def test_or_expression_uses_first_accepted_branch(
        self, make_crate: Callable
    ) -> None:
        """Test that only the license used to satisfy the policy is reported."""
        engine = PolicyEngine(AcceptedPolicy.of(["Apache-2.0"]))

        result = engine.evaluate([make_crate(license="MIT OR Apache-2.0")])

        assert [row.id for row in result.report.overview] == ["Apache-2.0"]

    def test_and_expression_reports_every_license(
        self, make_crate: Callable, policy: AcceptedPolicy
    ) -> None:
        """Test that each AND term is disclosed."""
        result = PolicyEngine(policy).evaluate([make_crate(license="MIT AND Apache-2.0")])

        assert [row.id for row in result.report.overview] == ["MIT", "Apache-2.0"]

    def test_license_missing_from_corpus(self, make_crate: Callable) -> None:
        """Test that an accepted license without corpus text is still listed."""
        engine = PolicyEngine(AcceptedPolicy.of(["MPL-2.0"]))

        result = engine.evaluate([make_crate(license="MPL-2.0")])

        [row] = result.report.licenses
        assert row.name == "Mozilla Public License 2.0"
        assert row.text == ""


class TestFailures:
    """Crates that are rejected or cannot be resolved."""

    def test_rejected_license_fails_run(
        self, engine: PolicyEngine, make_crate: Callable
    ) -> None:
        """Test that a non-accepted license is an error."""
        result = engine.evaluate([make_crate(license="GPL-3.0-only")])

        assert not result.passed
        assert result.evaluations[0].state is CrateState.REJECTED
        assert [str(d) for d in result.errors] == [
            "error: failed to satisfy license requirements for 'package 0.0.0': "
            "GPL-3.0-only"
        ]
        assert result.report.overview == []

    def test_rejection_does_not_stop_evaluation(
        self, engine: PolicyEngine, make_crate: Callable
    ) -> None:
        """Test that every crate is evaluated after a rejection."""
        crates = [
            make_crate(name="bad", license="GPL-3.0-only"),
            make_crate(name="good", license="MIT"),
            make_crate(name="unknown", license="UNKNOWN"),
        ]

        result = engine.evaluate(crates)

        assert [e.state for e in result.evaluations] == [
            CrateState.REJECTED,
            CrateState.ACCEPTED,
            CrateState.PARSE_FAILED,
        ]
        assert len(result.errors) == 1
        assert len(result.warnings) == 1
        assert result.report.overview[0].count == 1

    def test_unknown_identifier_is_a_warning(
        self, engine: PolicyEngine, make_crate: Callable
    ) -> None:
        """Test that an unparsable expression drops the crate with a warning."""
        result = engine.evaluate([make_crate(license="UNKNOWN")])

        assert result.passed
        assert [d.message for d in result.warnings] == [
            "unable to parse license expression for 'package 0.0.0': UNKNOWN"
        ]
        assert result.warnings[0].crate == "package 0.0.0"
        assert result.report.licenses == []

    def test_no_license_and_no_file(
        self, engine: PolicyEngine, make_crate: Callable
    ) -> None:
        """Test the warning for a crate with nothing to go on."""
        result = engine.evaluate([make_crate()])

        assert result.passed
        assert result.evaluations[0].state is CrateState.NO_EXPRESSION
        assert [d.message for d in result.diagnostics] == [SYNTHESIZE_WARNING]

    def test_unrecognized_license_file(
        self, engine: PolicyEngine, make_crate: Callable
    ) -> None:
        """Test that a LICENSE file matching nothing gives the same warning."""
        crate = make_crate(license_text="Use at your own risk, but ask me first.\n")

        result = engine.evaluate([crate])

        assert [d.message for d in result.diagnostics] == [SYNTHESIZE_WARNING]
        assert result.evaluations[0].candidate.raw_text is not None

    def test_license_text_in_other_file_name(
        self, engine: PolicyEngine, make_crate: Callable, mit_license: Callable
    ) -> None:
        """Test that MIT text outside LICENSE is not recovered."""
        crate = make_crate(license_text=mit_license(), file_name="MIT_LICENSE")

        result = engine.evaluate([crate])

        assert [d.message for d in result.diagnostics] == [SYNTHESIZE_WARNING]


class TestRecoveredLicenses:
    """Crates whose license is recovered from their LICENSE file."""

    def test_recovered_license_is_reported_with_warning(
        self, engine: PolicyEngine, make_crate: Callable, mit_license: Callable
    ) -> None:
        """Test that a recovered license is accepted but flagged."""
        text = mit_license("2024", "Someone")

        result = engine.evaluate([make_crate(license_text=text)])

        assert result.passed
        assert [str(d) for d in result.diagnostics] == [
            "warning: crate 'package 0.0.0' doesn't have a license field"
        ]
        assert result.diagnostics[0].severity is Severity.WARNING
        [row] = result.report.licenses
        assert row.id == "MIT"
        assert row.text == text
        assert row.source_path == "package/LICENSE"

    def test_recovered_license_not_accepted(
        self, make_crate: Callable, mit_license: Callable
    ) -> None:
        """Test that a recovered license is still checked against the policy."""
        engine = PolicyEngine(AcceptedPolicy.of(["Apache-2.0"]))

        result = engine.evaluate([make_crate(license_text=mit_license())])

        assert not result.passed
        assert result.errors[0].message.endswith(": MIT")

    def test_file_with_two_licenses_recovers_the_dominant_one(
        self,
        engine: PolicyEngine,
        make_crate: Callable,
        mit_license: Callable,
        corpus: LicenseCorpus,
    ) -> None:
        """Test that an Apache-2.0 file with an MIT appendix is not accepted as MIT."""
        text = corpus.get("Apache-2.0").text + "\n\n" + mit_license()

        result = engine.evaluate([make_crate(license_text=text)])

        [evaluation] = result.evaluations
        assert evaluation.candidate.expression == "Apache-2.0"
        assert [m.identifier for m in evaluation.candidate.matches] == ["Apache-2.0", "MIT"]
        assert evaluation.state is CrateState.REJECTED
        assert [str(d) for d in result.diagnostics] == [
            "warning: crate 'package 0.0.0' doesn't have a license field",
            "error: failed to satisfy license requirements for 'package 0.0.0': Apache-2.0",
        ]
        assert result.report.overview == []


class TestEngineOptions:
    """Engine construction and execution options."""

    def test_parallel_matches_sequential(
        self, mit_policy: AcceptedPolicy, make_crate: Callable, mit_license: Callable
    ) -> None:
        """Test that worker threads do not change the outcome or order."""
        crates = [
            make_crate(
                name=f"crate{i}",
                license="MIT" if i % 3 else None,
                license_text=mit_license(str(2000 + i), f"Holder {i}"),
            )
            for i in range(12)
        ] + [make_crate(name="gpl", license="GPL-3.0-only")]

        sequential = PolicyEngine(mit_policy).evaluate(crates)
        parallel = PolicyEngine(mit_policy, max_workers=4).evaluate(crates)

        assert parallel.report == sequential.report
        assert parallel.diagnostics == sequential.diagnostics
        assert [e.state for e in parallel.evaluations] == [
            e.state for e in sequential.evaluations
        ]

    def test_invalid_worker_count(self, mit_policy: AcceptedPolicy) -> None:
        """Test that fewer than one worker is rejected."""
        with pytest.raises(ValueError, match="max_workers"):
            PolicyEngine(mit_policy, max_workers=0)

    def test_custom_corpus(self, mit_policy: AcceptedPolicy, make_crate: Callable) -> None:
        """Test that canonical texts come from the configured corpus."""
        corpus = LicenseCorpus([CorpusEntry("MIT", "Expat", "short mit")])

        result = PolicyEngine(mit_policy, corpus=corpus).evaluate(
            [make_crate(license="MIT")]
        )

        assert result.report.licenses[0].text == "short mit"
        assert result.report.overview[0].name == "Expat"

    def test_evaluate_function(self, mit_policy: AcceptedPolicy, make_crate: Callable) -> None:
        """Test the module-level convenience wrapper."""
        result = evaluate([make_crate(license="MIT")], mit_policy)
        assert result.passed
        assert result.report.overview[0].id == "MIT"

    def test_empty_graph(self, engine: PolicyEngine) -> None:
        """Test that an empty graph passes with an empty report."""
        result = engine.evaluate([])
        assert result.passed
        assert result.report.overview == []
