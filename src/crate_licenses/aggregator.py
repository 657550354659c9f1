"""Aggregation of resolved licenses into report rows.

Rows are grouped by license identifier. Identifiers appear in order of first
occurrence in the input, so a given crate order always yields the same report.
"""

from typing import Iterable

from crate_licenses.models import LicenseTextRow, OverviewRow, Report, ResolvedLicense


def aggregate(licenses: Iterable[ResolvedLicense]) -> Report:
    """Collapse resolved licenses into overview and license text rows.

    Each identifier yields one overview row counting the distinct crates that
    use it. Each distinct text of an identifier yields one license text row,
    so two crates under the same license with different copyright holders
    keep their own texts while sharing an overview row.

    Args:
        licenses: Resolved licenses of accepted crates, in crate order.

    Returns:
        The aggregated report.
    """
    names: dict[str, str] = {}
    crates: dict[str, dict[str, None]] = {}
    texts: dict[str, dict[str, tuple[str, dict[str, None]]]] = {}

    for resolved in licenses:
        identifier = resolved.identifier
        names.setdefault(identifier, resolved.name)
        crates.setdefault(identifier, {})[resolved.crate] = None

        by_text = texts.setdefault(identifier, {})
        if resolved.text not in by_text:
            by_text[resolved.text] = (resolved.source_path, {})
        by_text[resolved.text][1][resolved.crate] = None

    overview = [
        OverviewRow(count=len(users), name=names[identifier], id=identifier)
        for identifier, users in crates.items()
    ]
    rows = [
        LicenseTextRow(
            name=names[identifier],
            id=identifier,
            source_path=source_path,
            text=text,
            used_by=tuple(users),
        )
        for identifier, by_text in texts.items()
        for text, (source_path, users) in by_text.items()
    ]
    return Report(overview=overview, licenses=rows)
