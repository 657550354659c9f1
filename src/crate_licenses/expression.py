"""SPDX license expression parsing and policy evaluation.

Expressions are parsed with the SPDX licensing of the license-expression
library: license identifiers combined with ``AND`` / ``OR`` (in any letter
case) and grouped with parentheses, ``AND`` binding tighter than ``OR``.
``WITH`` exceptions and ``/`` separators are not supported and are parse
errors.

Leaf identifiers must be known SPDX license identifiers, as listed by the
versioned SPDX data bundled with license-expression, or user-defined
``LicenseRef-`` references. An expression such as ``UNKNOWN`` is therefore
rejected at parse time even though it is well formed.
"""

import logging
import re
from typing import Iterator, Optional

import boolean
from license_expression import (
    ExpressionError,
    LicenseSymbol,
    LicenseWithExceptionSymbol,
    get_spdx_licensing,
)

from crate_licenses.models import AcceptedPolicy

logger = logging.getLogger(__name__)

# SPDX licensing used to parse expressions and recognize identifiers
SPDX = get_spdx_licensing()

# A parsed expression: LicenseSymbol leaves under AND / OR nodes
Expression = boolean.Expression

_LICENSE_REF_RE = re.compile(
    r"^(?:DocumentRef-[A-Za-z0-9.\-]+:)?LicenseRef-[A-Za-z0-9.\-]+$"
)
_WITH_RE = re.compile(r"\bWITH\b", re.IGNORECASE)


class ParseError(ValueError):
    """Raised when a license expression cannot be parsed.

    Attributes:
        expression: The expression string, stripped.
        detail: Human-readable description of the problem.
        position: Character offset where the error was detected, if known.
    """

    def __init__(
        self, expression: str, detail: str, position: Optional[int] = None
    ) -> None:
        self.expression = expression
        self.detail = detail
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"{detail}{where} in '{expression}'")


def _position(found: int) -> Optional[int]:
    return found if found >= 0 else None


def _leaves(expression: Expression) -> Iterator[Expression]:
    if isinstance(expression, (boolean.AND, boolean.OR)):
        for arg in expression.args:
            yield from _leaves(arg)
    else:
        yield expression


def is_known_identifier(key: str) -> bool:
    """Return True for SPDX identifiers and ``LicenseRef-`` references."""
    return key in SPDX.known_symbols or bool(_LICENSE_REF_RE.match(key))


def parse(expression: str) -> Expression:
    """Parse a license expression.

    Identifiers are canonicalized to their SPDX key, so ``mit`` parses to
    ``MIT`` and the deprecated ``GPL-2.0`` to ``GPL-2.0-only``.

    Args:
        expression: Expression string (e.g., "MIT OR Apache-2.0").

    Returns:
        The root node of the parsed expression.

    Raises:
        ParseError: If the expression is malformed, uses an unsupported
            operator or names an unknown license.
    """
    stripped = expression.strip()
    if not stripped:
        raise ParseError(expression, "empty expression")

    slash = stripped.find("/")
    if slash >= 0:
        raise ParseError(stripped, "unsupported operator '/'", slash)

    try:
        parsed = SPDX.parse(stripped)
    except ExpressionError as e:
        # ExpressionParseError carries the offending position
        raise ParseError(
            stripped, str(e), _position(getattr(e, "position", -1))
        ) from e

    for leaf in _leaves(parsed):
        if isinstance(leaf, LicenseWithExceptionSymbol):
            match = _WITH_RE.search(stripped)
            raise ParseError(
                stripped, "unsupported operator 'WITH'", match.start() if match else None
            )
        if not is_known_identifier(leaf.key):
            raise ParseError(
                stripped,
                f"unknown license identifier {leaf.key!r}",
                _position(stripped.find(leaf.key)),
            )

    return parsed


def _accepts(policy: AcceptedPolicy, symbol: LicenseSymbol) -> bool:
    return symbol.key in policy or any(alias in policy for alias in symbol.aliases)


def satisfies(expression: Expression, policy: AcceptedPolicy) -> bool:
    """Return True if the expression is satisfied by the accepted licenses.

    A leaf is accepted when the policy lists its SPDX key or one of the
    key's SPDX aliases.
    """
    if isinstance(expression, boolean.AND):
        return all(satisfies(arg, policy) for arg in expression.args)
    if isinstance(expression, boolean.OR):
        return any(satisfies(arg, policy) for arg in expression.args)
    return _accepts(policy, expression)


def _satisfying_leaves(
    expression: Expression, policy: AcceptedPolicy
) -> Optional[list[LicenseSymbol]]:
    if isinstance(expression, boolean.AND):
        leaves: list[LicenseSymbol] = []
        for arg in expression.args:
            arg_leaves = _satisfying_leaves(arg, policy)
            if arg_leaves is None:
                return None
            leaves.extend(arg_leaves)
        return leaves
    if isinstance(expression, boolean.OR):
        for arg in expression.args:
            arg_leaves = _satisfying_leaves(arg, policy)
            if arg_leaves is not None:
                return arg_leaves
        return None
    return [expression] if _accepts(policy, expression) else None


def licenses_satisfying(expression: Expression, policy: AcceptedPolicy) -> list[str]:
    """Return the identifiers through which the policy is satisfied.

    Every term of an AND contributes; of an OR, only the first satisfied
    term does, in expression order.

    Returns:
        Distinct SPDX keys in expression order, empty if the expression is
        not satisfied.
    """
    leaves = _satisfying_leaves(expression, policy) or []
    return list(dict.fromkeys(leaf.key for leaf in leaves))


def license_ids(expression: Expression) -> list[str]:
    """Return every distinct identifier of an expression, in order."""
    return SPDX.license_keys(expression)
