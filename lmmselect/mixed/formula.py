"""
Typed model formula.

A Formula declares a response, an ordered set of fixed-effect terms
(main effects or interactions) and zero or more random-effect terms, each
attaching a random intercept and/or random slopes to one grouping factor.

The formula is a value object: building a bigger model means creating a
new Formula (``with_random``), never mutating one. Rendering to the
statistics library's formula language happens only in the backend through
``fixed_rhs()``, ``to_patsy()`` and ``RandomTerm.re_formula()``.

Example:
    (1 + days | subject):

    >>> f = Formula('reaction', fixed=['days'],
    ...             random=[RandomTerm('subject', slopes=('days',))])
    >>> str(f)
    'reaction ~ 1 + days + (1 + days | subject)'
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from lmmselect.core.exceptions import ValidationError

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_.]*$')


def quote_name(name: str) -> str:
    """Quote a column name for the formula language if it is not an identifier."""
    if _IDENTIFIER.match(name):
        return name
    escaped = name.replace('\\', '\\\\').replace('"', '\\"')
    return f'Q("{escaped}")'


@dataclass(frozen=True, eq=False)
class FixedTerm:
    """One fixed-effect term: a main effect or an interaction.

    Two terms are equal when they involve the same set of factors, so
    ``a:b`` and ``b:a`` are the same term.
    """
    factors: tuple[str, ...]

    def __post_init__(self):
        factors = tuple(str(f).strip() for f in self.factors)
        if not factors or any(not f for f in factors):
            raise ValidationError(f"FixedTerm: empty factor name in {self.factors!r}")
        if len(set(factors)) != len(factors):
            raise ValidationError(f"FixedTerm: repeated factor in {factors!r}")
        object.__setattr__(self, 'factors', factors)

    @classmethod
    def parse(cls, text: str) -> FixedTerm:
        """Build from ``'a'`` or ``'a:b'``."""
        return cls(tuple(part for part in text.split(':')))

    @property
    def key(self) -> frozenset[str]:
        return frozenset(self.factors)

    @property
    def is_interaction(self) -> bool:
        return len(self.factors) > 1

    @property
    def name(self) -> str:
        return ':'.join(self.factors)

    def render(self) -> str:
        return ':'.join(quote_name(f) for f in self.factors)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixedTerm):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class RandomTerm:
    """Random intercept and/or slopes varying by one grouping factor.

    Attributes:
        group: Grouping factor column (e.g. 'subject').
        slopes: Columns whose effect varies by group. With an intercept,
            intercept and slopes are estimated with a full (correlated)
            covariance matrix.
        intercept: Whether the intercept varies by group.
    """
    group: str
    slopes: tuple[str, ...] = ()
    intercept: bool = True

    def __post_init__(self):
        slopes = tuple(str(s).strip() for s in self.slopes)
        if not str(self.group).strip():
            raise ValidationError("RandomTerm: empty grouping factor name")
        if len(set(slopes)) != len(slopes):
            raise ValidationError(f"RandomTerm({self.group}): repeated slope in {slopes!r}")
        if self.group in slopes:
            raise ValidationError(
                f"RandomTerm({self.group}): grouping factor cannot be its own slope"
            )
        if not self.intercept and not slopes:
            raise ValidationError(
                f"RandomTerm({self.group}): needs an intercept or at least one slope"
            )
        object.__setattr__(self, 'slopes', slopes)

    @property
    def n_terms(self) -> int:
        """Number of random coefficients per group."""
        return int(self.intercept) + len(self.slopes)

    def covers(self, other: RandomTerm) -> bool:
        """True if every random coefficient of ``other`` is also in self."""
        return (
            self.group == other.group
            and (self.intercept or not other.intercept)
            and set(other.slopes) <= set(self.slopes)
        )

    def re_formula(self) -> str:
        """Right-hand side of the per-group random-effects design."""
        parts = ['1' if self.intercept else '0']
        parts.extend(quote_name(s) for s in self.slopes)
        return ' + '.join(parts)

    def __str__(self) -> str:
        parts = ['1' if self.intercept else '0', *self.slopes]
        return f"({' + '.join(parts)} | {self.group})"


@dataclass(frozen=True)
class Formula:
    """Response, fixed-effect terms and random-effect terms.

    Fixed terms may be given as FixedTerm instances or strings
    (``'days'``, ``'side:band'``). At most one random term per grouping
    factor.
    """
    response: str
    fixed: tuple[FixedTerm, ...] = ()
    random: tuple[RandomTerm, ...] = ()
    intercept: bool = True

    def __post_init__(self):
        response = str(self.response).strip()
        if not response:
            raise ValidationError("Formula: empty response name")

        fixed = tuple(
            t if isinstance(t, FixedTerm) else FixedTerm.parse(str(t))
            for t in self.fixed
        )
        if len(set(fixed)) != len(fixed):
            raise ValidationError(
                f"Formula: duplicate fixed term in {[t.name for t in fixed]}"
            )
        if any(response in t.factors for t in fixed):
            raise ValidationError(f"Formula: response '{response}' used as a predictor")

        random = tuple(self.random)
        groups = [r.group for r in random]
        if len(set(groups)) != len(groups):
            raise ValidationError(
                f"Formula: more than one random term for a grouping factor: {groups}"
            )
        if not self.intercept and not fixed:
            raise ValidationError("Formula: no intercept and no fixed terms")

        object.__setattr__(self, 'response', response)
        object.__setattr__(self, 'fixed', fixed)
        object.__setattr__(self, 'random', random)

    # --- Introspection ---

    @property
    def groups(self) -> tuple[str, ...]:
        return tuple(r.group for r in self.random)

    @property
    def has_random(self) -> bool:
        return bool(self.random)

    @property
    def variables(self) -> tuple[str, ...]:
        """Every column the formula references, response first, no repeats."""
        names = [self.response]
        for t in self.fixed:
            names.extend(t.factors)
        for r in self.random:
            names.append(r.group)
            names.extend(r.slopes)
        return tuple(dict.fromkeys(names))

    def random_for(self, group: str) -> RandomTerm | None:
        for r in self.random:
            if r.group == group:
                return r
        return None

    # --- Derivation ---

    def with_random(self, *terms: RandomTerm) -> Formula:
        """New formula with the given random terms added or replaced by group."""
        replaced = {t.group: t for t in terms}
        kept = tuple(r for r in self.random if r.group not in replaced)
        return Formula(
            response=self.response,
            fixed=self.fixed,
            random=kept + tuple(terms),
            intercept=self.intercept,
        )

    def without_random(self) -> Formula:
        return Formula(
            response=self.response,
            fixed=self.fixed,
            random=(),
            intercept=self.intercept,
        )

    def with_fixed(self, *terms: FixedTerm | str) -> Formula:
        """New formula with extra fixed terms appended."""
        return Formula(
            response=self.response,
            fixed=self.fixed + tuple(terms),
            random=self.random,
            intercept=self.intercept,
        )

    # --- Nesting ---

    def is_nested_in(self, other: Formula) -> bool:
        """True if every term of self also appears in ``other``."""
        if self.response != other.response:
            return False
        if self.intercept and not other.intercept:
            return False
        if not set(self.fixed) <= set(other.fixed):
            return False
        for r in self.random:
            o = other.random_for(r.group)
            if o is None or not o.covers(r):
                return False
        return True

    def is_strictly_nested_in(self, other: Formula) -> bool:
        """Nested, and ``other`` has at least one term self lacks."""
        return self.is_nested_in(other) and not other.is_nested_in(self)

    # --- Rendering ---

    def fixed_rhs(self) -> str:
        parts = ['1' if self.intercept else '0']
        parts.extend(t.render() for t in self.fixed)
        return ' + '.join(parts)

    def to_patsy(self) -> str:
        """Fixed-effects part in the statistics library's formula language."""
        return f"{quote_name(self.response)} ~ {self.fixed_rhs()}"

    def __str__(self) -> str:
        parts = ['1' if self.intercept else '0']
        parts.extend(t.name for t in self.fixed)
        parts.extend(str(r) for r in self.random)
        return f"{self.response} ~ {' + '.join(parts)}"


def formula(
    response: str,
    fixed: Iterable[FixedTerm | str] = (),
    random: Iterable[RandomTerm] = (),
    *,
    intercept: bool = True,
) -> Formula:
    """Convenience constructor accepting any iterables."""
    return Formula(
        response=response,
        fixed=tuple(fixed),
        random=tuple(random),
        intercept=intercept,
    )
