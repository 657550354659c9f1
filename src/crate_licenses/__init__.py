"""Crate Licenses - license attribution and compliance for Rust crates.

This package resolves the license of every crate in a dependency graph,
checks it against a set of accepted licenses and renders the license texts
that must be disclosed.
"""

__version__ = "0.1.0"
__author__ = "forkrul"

from crate_licenses.engine import PolicyEngine, evaluate
from crate_licenses.models import (
    AcceptedPolicy,
    CrateRecord,
    Diagnostic,
    EvaluationResult,
    LicenseFile,
    Report,
)

__all__ = [
    "__version__",
    "AcceptedPolicy",
    "CrateRecord",
    "Diagnostic",
    "EvaluationResult",
    "LicenseFile",
    "PolicyEngine",
    "Report",
    "evaluate",
]
