"""Visibility label expansion.

Turns a visibility expression such as ``secret&(admin|!guest)`` into
visibility tags: the expression is expanded to disjunctive normal form and
each conjunction becomes one tag holding the ordinals of its labels.
"""

from __future__ import annotations

import functools
import logging
import re
import struct
from collections.abc import Mapping
from typing import TYPE_CHECKING

from ..core.errors import ConfigurationError, LabelExpansionError
from .cell import Cell, CellVisibility, Tag

if TYPE_CHECKING:
    from ..core.types import Timestamp
    from .parser import ParsedLine

logger = logging.getLogger(__name__)

VISIBILITY_TAG_TYPE = 2
DEFAULT_CACHE_SIZE = 1024

_TOKEN_RE = re.compile(r"\s*(?:(?P<label>[A-Za-z0-9_.:/\-]+)|(?P<op>[&|!()]))")

Literal = tuple[str, bool]  # (label, negated)
Conjunction = frozenset[Literal]


class _ExpressionParser:
    """Recursive-descent parser producing DNF directly.

    Precedence: ``!`` binds tightest, then ``&``, then ``|``.
    """

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = self._tokenize(expression)
        self.pos = 0

    def _tokenize(self, expression: str) -> list[str]:
        tokens: list[str] = []
        pos = 0
        stripped = expression.rstrip()
        while pos < len(stripped):
            match = _TOKEN_RE.match(stripped, pos)
            if match is None:
                raise LabelExpansionError(
                    f"Invalid character at {pos} in expression {expression!r}"
                )
            tokens.append(match.group("label") or match.group("op"))
            pos = match.end()
        return tokens

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> str:
        token = self._peek()
        if token is None:
            raise LabelExpansionError(f"Unexpected end of expression {self.expression!r}")
        self.pos += 1
        return token

    def parse(self) -> list[Conjunction]:
        if not self.tokens:
            return []
        dnf = self._or()
        if self._peek() is not None:
            raise LabelExpansionError(
                f"Unexpected {self._peek()!r} in expression {self.expression!r}"
            )
        return dnf

    def _or(self) -> list[Conjunction]:
        dnf = self._and()
        while self._peek() == "|":
            self._take()
            dnf = _union(dnf, self._and())
        return dnf

    def _and(self) -> list[Conjunction]:
        dnf = self._unary()
        while self._peek() == "&":
            self._take()
            dnf = _product(dnf, self._unary())
        return dnf

    def _unary(self) -> list[Conjunction]:
        token = self._take()
        if token == "!":
            return _negate(self._unary())
        if token == "(":
            dnf = self._or()
            if self._take() != ")":
                raise LabelExpansionError(f"Missing ')' in expression {self.expression!r}")
            return dnf
        if token in ("&", "|", ")"):
            raise LabelExpansionError(f"Unexpected {token!r} in expression {self.expression!r}")
        return [frozenset({(token, False)})]


def _union(left: list[Conjunction], right: list[Conjunction]) -> list[Conjunction]:
    return left + [c for c in right if c not in left]


def _product(left: list[Conjunction], right: list[Conjunction]) -> list[Conjunction]:
    result: list[Conjunction] = []
    for a in left:
        for b in right:
            c = a | b
            if c not in result:
                result.append(c)
    return result


def _negate(dnf: list[Conjunction]) -> list[Conjunction]:
    # !(c1 | c2) == !c1 & !c2, and each !ci is a disjunction of negated literals
    result: list[Conjunction] = [frozenset()]
    for conjunction in dnf:
        negated = [frozenset({(label, not neg)}) for label, neg in conjunction]
        result = _product(result, negated)
    return result


def expand_expression(expression: str) -> list[Conjunction]:
    """Expand a visibility expression into DNF conjunctions.

    A blank expression expands to no conjunctions and so yields no tags.
    """
    return _ExpressionParser(expression).parse()


class LabelExpander:
    """Builds labeled cells from visibility expressions.

    Args:
        labels: Label name -> ordinal table. Ordinals must be positive.
        cache_size: Number of distinct expressions whose tags are kept

    Raises:
        ConfigurationError: If an ordinal is not positive
    """

    def __init__(self, labels: Mapping[str, int], cache_size: int = DEFAULT_CACHE_SIZE):
        for label, ordinal in labels.items():
            if ordinal <= 0:
                raise ConfigurationError(f"Label {label!r} has non-positive ordinal {ordinal}")
        self._labels = dict(labels)
        self._cached_tags = functools.lru_cache(maxsize=cache_size)(self._expand)

    def _ordinal(self, label: str) -> int:
        try:
            return self._labels[label]
        except KeyError:
            raise LabelExpansionError(f"Unknown visibility label {label!r}") from None

    def _expand(self, expression: str) -> tuple[Tag, ...]:
        encoded = []
        for conjunction in expand_expression(expression):
            ordinals = sorted((self._ordinal(label), negated) for label, negated in conjunction)
            value = b"".join(
                struct.pack(">i", -ordinal if negated else ordinal)
                for ordinal, negated in ordinals
            )
            encoded.append(value)
        tags = tuple(Tag(VISIBILITY_TAG_TYPE, value) for value in sorted(set(encoded)))
        logger.debug(f"Expanded visibility {expression!r} into {len(tags)} tags")
        return tags

    def tags_for(self, expression: str) -> tuple[Tag, ...]:
        """Return visibility tags for an expression, one per conjunction."""
        return self._cached_tags(expression)

    def cache_info(self):
        return self._cached_tags.cache_info()

    def build_labeled_cell(
        self,
        parsed: ParsedLine,
        family: bytes,
        qualifier: bytes,
        column: int,
        ts: Timestamp,
        expression: str,
    ) -> Cell:
        """Build a put cell carrying the expression's visibility tags."""
        return Cell(
            row=parsed.row_key,
            family=family,
            qualifier=qualifier,
            timestamp=ts,
            value=parsed.column_bytes(column),
            visibility=CellVisibility(expression, self.tags_for(expression)),
        )
