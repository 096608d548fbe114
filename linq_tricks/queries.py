from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from operator import ge, gt, le, lt
from typing import Any, Callable, Iterable

from .common import QueryPlan, resolve_path
from .exceptions import LinqValidationException

_logger = logging.getLogger(__name__)


class Expression(ABC):
    """
    A condition evaluated against one record at a time.

    Expressions are usually compiled from the prefix token lists produced by
    the `F` DSL, e.g.::

        ['&', ['amount', '>', 1000], ['status', '==', 'Pending']]
    """

    @staticmethod
    def compile(tokens: list) -> Expression:
        """
        Compile a prefix token list. Several top-level terms are joined with an
        implicit AND; an empty list matches every record.
        """
        reader = _TokenReader(tokens)
        terms = []
        while not reader.exhausted():
            terms.append(reader.read())
        if not terms:
            return TrueTerm()
        if len(terms) == 1:
            return terms[0]
        return AndExpression(terms)

    @abstractmethod
    def match(self, record) -> bool:
        """
        Tell whether the record satisfies this expression.
        """


class _TokenReader:
    def __init__(self, tokens: list):
        self.tokens = tokens
        self.position = 0

    def exhausted(self) -> bool:
        return self.position >= len(self.tokens)

    def _next(self) -> Any:
        if self.exhausted():
            raise LinqValidationException(message=f'Unexpected end of expression {self.tokens}')
        token = self.tokens[self.position]
        self.position += 1
        return token

    def read(self) -> Expression:
        token = self._next()
        if isinstance(token, list):
            return Expression.compile(token)
        if token == '!':
            return NotExpression(self.read())
        if token == '&':
            return AndExpression([self.read(), self.read()])
        if token == '|':
            return OrExpression([self.read(), self.read()])

        # [attribute, operator, operands...]
        operator = Operator.get_operator(self._next())
        operands = tuple(self._next() for _ in range(operator.operand_count))
        return Term(token, operator, operands[0] if len(operands) == 1 else operands or None)


class _Junction(Expression):
    """
    Base of AND/OR nodes. Nested nodes of the same kind are flattened on construction.
    """

    terms: list[Expression]

    def __init__(self, terms: Iterable[Expression]):
        self.terms = []
        for term in terms:
            if type(term) is type(self):
                self.terms.extend(term.terms)
            else:
                self.terms.append(term)


class AndExpression(_Junction):
    def match(self, record):
        return all(term.match(record) for term in self.terms)


class OrExpression(_Junction):
    def match(self, record):
        return any(term.match(record) for term in self.terms)


class NotExpression(Expression):
    def __init__(self, negated: Expression):
        self.negated = negated

    def match(self, record):
        return not self.negated.match(record)


class Operator:
    """
    A named test between the value found on a record and the operands of a term.

    `operand_count` does not include the attribute: '?N' takes none, '==' takes
    one, and the 'between' family takes two, handed to `match` as a (lo, hi) tuple.
    """

    def __init__(self, token: str, operand_count: int, test: Callable[[Any, Any], bool]):
        self.token = token
        self.operand_count = operand_count
        self._test = test

    def match(self, source, value=None) -> bool:
        return self._test(source, value)

    def __repr__(self):
        return f'Operator({self.token!r})'

    @staticmethod
    def get_operator(token) -> Operator:
        try:
            return _OPERATORS[token]
        except (KeyError, TypeError):
            raise LinqValidationException(message=f'Unknown operator: {token!r}')


def _ordering(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    # None never takes part in an ordering comparison
    return lambda source, value: source is not None and value is not None and compare(source, value)


def _between(include_lower: bool, include_upper: bool) -> Callable[[Any, Any], bool]:
    def test(source, bounds):
        lo, hi = bounds
        if source is None or lo is None or hi is None or lo > hi:
            return False
        if source < lo or (source == lo and not include_lower):
            return False
        return source < hi or (source == hi and include_upper)
    return test


_OPERATORS: dict[str, Operator] = {operator.token: operator for operator in (
    Operator('==', 1, lambda source, value: source == value),
    Operator('!=', 1, lambda source, value: source != value),
    Operator('>', 1, _ordering(gt)),
    Operator('>=', 1, _ordering(ge)),
    Operator('<', 1, _ordering(lt)),
    Operator('<=', 1, _ordering(le)),
    Operator('contains', 1, lambda source, value: source is not None and value in source),
    Operator('in', 1, lambda source, value: source in value),
    Operator('?T', 0, lambda source, _: bool(source)),
    Operator('?N', 0, lambda source, _: source is None),
    Operator('?!N', 0, lambda source, _: source is not None),
    Operator('between[]', 2, _between(True, True)),
    Operator('between()', 2, _between(False, False)),
    Operator('between(]', 2, _between(False, True)),
    Operator('between[)', 2, _between(True, False)),
)}


class Term(Expression):
    """
    Applies `operation` to the value found at `target_attribute` (a dotted path).
    """

    def __init__(self, target_attribute: str, operation: Operator, value: object = None):
        self.target_attribute = target_attribute
        self.operation = operation
        self.value = value

    def match(self, record):
        return self.operation.match(resolve_path(record, self.target_attribute), self.value)

    def __repr__(self):
        return f'Term({self.target_attribute!r} {self.operation.token} {self.value!r})'


class TrueTerm(Expression):
    def match(self, record):
        return True


class ListPlan(QueryPlan):
    """
    Leaf plan over any re-iterable Python collection.
    """

    def __init__(self, base_list: Iterable):
        super().__init__()
        self.base_list = base_list

    def execute(self):
        yield from self.base_list

    def optimize(self) -> QueryPlan:
        return self

    def count(self) -> int:
        if hasattr(self.base_list, '__len__'):
            return len(self.base_list)
        return super().count()


class WherePlan(QueryPlan):
    """
    Keeps the records of `based_on` that satisfy `filter`.

    The filter is given either compiled (`filter`) or as a prefix token list
    (`filter_spec`).
    """

    filter: Expression

    def __init__(self, filter_spec: list = None, filter: Expression = None, based_on: QueryPlan = None):
        super().__init__(based_on=based_on)
        if filter_spec is not None:
            filter = Expression.compile(filter_spec)
        if filter is None:
            raise LinqValidationException(message='WherePlan needs a filter_spec or a filter')
        self.filter = filter

    def execute(self):
        if self.based_on is None:
            return
        yield from (record for record in self.based_on.execute() if self.filter.match(record))

    def optimize(self) -> QueryPlan:
        base = self.based_on.optimize() if self.based_on is not None else None
        if isinstance(base, WherePlan):
            _logger.debug("Merging stacked filters into one WherePlan")
            return WherePlan(filter=AndExpression([base.filter, self.filter]), based_on=base.based_on)
        if base is self.based_on:
            return self
        return WherePlan(filter=self.filter, based_on=base)


class SelectPlan(QueryPlan):
    """
    Projects each record of `based_on` into a dict.

    `fields` maps output names to a source path (a missing value leaves the
    key out) or to a callable taking the record, whose exceptions propagate.
    """

    def __init__(self, fields: dict[str, str | Callable[[Any], Any]], based_on: QueryPlan = None):
        super().__init__(based_on=based_on)
        self.fields = fields

    def _project(self, record) -> dict:
        row = {}
        for name, source in self.fields.items():
            if callable(source):
                row[name] = source(record)
                continue
            value = resolve_path(record, source)
            if value is not None:
                row[name] = value
        return row

    def execute(self):
        if self.based_on is None:
            return
        for record in self.based_on.execute():
            yield self._project(record)

    def optimize(self) -> QueryPlan:
        base = self.based_on.optimize() if self.based_on is not None else None
        if base is self.based_on:
            return self
        return SelectPlan(fields=self.fields, based_on=base)
