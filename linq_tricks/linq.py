"""
LINQ-like lazy queries over Python iterables and QueryPlans.

A Queryable records a list of steps and runs them only when consumed. Over a
QueryPlan source, the leading where() steps written with the `F` DSL (and
dict selects) become WherePlan/SelectPlan nodes; everything after them runs
locally, step by step, as chained generators.
"""

from __future__ import annotations

import configparser
import logging
import os
import time
import warnings
from dataclasses import dataclass, fields as dataclass_fields, replace
from itertools import islice
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, NamedTuple, Optional, Set, Tuple, \
    TypeVar

from .arrow_bridge import to_arrow
from .common import QueryPlan, resolve_path
from .exceptions import LinqLimitExceededException, LinqNotSupportedException, LinqValidationException
from .queries import Expression, Operator, SelectPlan, WherePlan

_logger = logging.getLogger(__name__)

T = TypeVar('T')
K = TypeVar('K')
U = TypeVar('U')
V = TypeVar('V')

ON_UNSUPPORTED_MODES = ('error', 'warn', 'fallback')

_MISSING = object()


@dataclass
class Policy:
    """Execution limits and fallback behaviour of a Queryable.

    on_unsupported: 'error' | 'warn' | 'fallback'
        What to do with a where() predicate that a QueryPlan source can't
        evaluate (a plain Python callable). Iterable sources always run
        predicates locally and ignore this setting.
    max_rows_local: maximum number of rows a pipeline may yield, 0 = no limit.
    timeout_ms: wall-clock limit for consuming a pipeline, 0 = no timeout.
    """
    on_unsupported: str = "fallback"
    max_rows_local: int = 0
    timeout_ms: int = 0

    def __post_init__(self):
        if self.on_unsupported not in ON_UNSUPPORTED_MODES:
            raise LinqValidationException(
                message=f"on_unsupported must be one of {ON_UNSUPPORTED_MODES}, got {self.on_unsupported!r}")
        for name in ('max_rows_local', 'timeout_ms'):
            if getattr(self, name) < 0:
                raise LinqValidationException(message=f"{name} can't be negative, got {getattr(self, name)}")

    @classmethod
    def from_config(cls, config: configparser.ConfigParser, section: str = "linq") -> Policy:
        """Build a Policy from a config section; missing keys keep their defaults."""
        if not config.has_section(section):
            return cls()
        options = config[section]
        values: Dict[str, Any] = {}
        for f in dataclass_fields(cls):
            if f.name not in options:
                continue
            if f.type != 'int':
                values[f.name] = options[f.name]
                continue
            try:
                values[f.name] = options.getint(f.name)
            except ValueError:
                raise LinqValidationException(message=f"{section}.{f.name} must be an integer, got {options[f.name]!r}")
        return cls(**values)


def load_policy(path: str, section: str = "linq") -> Policy:
    """Read a Policy from an INI file. A missing file yields the default policy."""
    if not os.path.exists(path):
        _logger.debug("No policy file at %s, using defaults", path)
        return Policy()
    config = configparser.ConfigParser()
    config.read(path)
    return Policy.from_config(config, section)


class Grouping(Generic[K, U]):
    """The elements sharing one key, in the order they were met."""

    def __init__(self, key: K, elements: Iterable[U]):
        self.key = key
        self.elements: List[U] = list(elements)

    def __iter__(self) -> Iterator[U]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def __repr__(self) -> str:
        return f"Grouping({self.key!r}, {len(self.elements)} elements)"


class _Predicate:
    """
    A row test. When it was built only from DSL terms it also carries the
    equivalent expression tokens, which is what makes it pushable.
    """

    def __init__(self, test: Callable[[Any], bool], tokens: Optional[list] = None):
        self.test = test
        self.tokens = tokens
        self._expression: Optional[Expression] = None

    def __call__(self, row) -> bool:
        return self.test(row)

    @property
    def pushable(self) -> bool:
        return self.tokens is not None

    def expression(self) -> Expression:
        if self._expression is None:
            self._expression = Expression.compile(self.tokens)
        return self._expression

    def _join(self, other, token: str, test: Callable[[Any], bool]) -> _Predicate:
        pushable = self.pushable and isinstance(other, _Predicate) and other.pushable
        return _Predicate(test, [token, self.tokens, other.tokens] if pushable else None)

    def __and__(self, other) -> _Predicate:
        left, right = self.test, _as_function(other)
        return self._join(other, '&', lambda row: bool(left(row)) and bool(right(row)))

    def __or__(self, other) -> _Predicate:
        left, right = self.test, _as_function(other)
        return self._join(other, '|', lambda row: bool(left(row)) or bool(right(row)))

    def __invert__(self) -> _Predicate:
        test = self.test
        return _Predicate(lambda row: not test(row), ['!', self.tokens] if self.pushable else None)


class _Field:
    """
    Reference to an attribute or key of the current row, possibly nested
    (`F.customer.email`). Calling it resolves the value; comparing it builds
    a pushable predicate.
    """

    def __init__(self, path: Tuple[str, ...]):
        self._path = path

    def __getattr__(self, name: str) -> _Field:
        if name.startswith('__'):
            raise AttributeError(name)
        return _Field(self._path + (name,))

    def __getitem__(self, name: str) -> _Field:
        return _Field(self._path + (name,))

    def __call__(self, row) -> Any:
        return resolve_path(row, self._path)

    def __repr__(self) -> str:
        return f"F.{self._dotted}"

    @property
    def _dotted(self) -> str:
        return '.'.join(self._path)

    def _term(self, token: str, *operands) -> _Predicate:
        # Local evaluation uses the same operator a WherePlan would
        operator = Operator.get_operator(token)
        value = operands[0] if len(operands) == 1 else operands or None
        return _Predicate(lambda row: operator.match(self(row), value), [self._dotted, token, *operands])

    def __eq__(self, other):
        return self._term('==', other)

    def __ne__(self, other):
        return self._term('!=', other)

    def __gt__(self, other):
        return self._term('>', other)

    def __ge__(self, other):
        return self._term('>=', other)

    def __lt__(self, other):
        return self._term('<', other)

    def __le__(self, other):
        return self._term('<=', other)

    __hash__ = None

    def in_(self, values: Iterable[Any]) -> _Predicate:
        return self._term('in', list(values))

    def contains(self, item: Any) -> _Predicate:
        return self._term('contains', item)

    def is_none(self) -> _Predicate:
        return self._term('?N')

    def is_not_none(self) -> _Predicate:
        return self._term('?!N')

    def is_true(self) -> _Predicate:
        """Truthiness: None, False, 0 and empty strings or collections fail."""
        return self._term('?T')

    def between(self, lo: Any, hi: Any, bounds: str = "[]") -> _Predicate:
        """Range test; `bounds` is one of '[]', '()', '(]', '[)'. A None bound matches nothing."""
        token = 'between' + bounds.strip()
        if token not in ('between[]', 'between()', 'between(]', 'between[)'):
            raise LinqValidationException(message=f"bounds must be one of '[]', '()', '(]', '[)', got {bounds!r}")
        return self._term(token, lo, hi)


def _group_aggregate(compute: Callable[[Grouping], Any], column: str) -> Callable[[Any], Any]:
    # Over a row already projected to a dict, read back the same-named column
    def aggregate(row):
        if isinstance(row, Grouping):
            return compute(row)
        return row.get(column) if isinstance(row, dict) else None
    return aggregate


class _FieldFactory:
    """
    `F.amount` and `F["amount"]` build field references. `F.key()`,
    `F.count()`, `F.sum(selector)` and `F.average(selector)` aggregate a
    Grouping inside a select() that follows group_by().
    """

    def __getattr__(self, name: str) -> _Field:
        if name.startswith('__'):
            raise AttributeError(name)
        return _Field((name,))

    def __getitem__(self, name: str) -> _Field:
        return _Field((name,))

    @staticmethod
    def key():
        return _group_aggregate(lambda group: group.key, 'key')

    @staticmethod
    def count():
        return _group_aggregate(len, 'count')

    @staticmethod
    def sum(selector=None):
        pick = _as_function(selector)
        return _group_aggregate(lambda group: _total(map(pick, group))[0], 'sum')

    @staticmethod
    def average(selector=None):
        pick = _as_function(selector)
        return _group_aggregate(lambda group: _mean(map(pick, group)), 'average')


F = _FieldFactory()


def _identity(value):
    return value


def _as_function(spec: Any) -> Callable[[Any], Any]:
    """
    Turn a selector into a callable: fields, predicates and functions are used
    as they are, dicts and lists/tuples select each of their entries, None is
    the identity and anything else is a constant.
    """
    if spec is None:
        return _identity
    if callable(spec):
        return spec
    if isinstance(spec, dict):
        columns = [(name, _as_function(value)) for name, value in spec.items()]
        return lambda row: {name: select(row) for name, select in columns}
    if isinstance(spec, (list, tuple)):
        parts = [_as_function(value) for value in spec]
        build = tuple if isinstance(spec, tuple) else list
        return lambda row: build(select(row) for select in parts)
    return lambda _row: spec


def _total(values: Iterable[Any]) -> Tuple[Any, int]:
    """Sum of the non-None values, keeping their type, and how many there were."""
    total, count = 0, 0
    for value in values:
        if value is not None:
            total += value
            count += 1
    return total, count


def _mean(values: Iterable[Any]) -> Any:
    total, count = _total(values)
    return total / count if count else 0


class _Step(NamedTuple):
    name: str
    args: tuple
    options: dict

    def describe(self) -> dict:
        return {"op": self.name, "args": [str(arg) for arg in self.args], **self.options}


class _Descending:
    """Sort-key wrapper inverting the natural order of its value."""
    __slots__ = ("value",)

    def __init__(self, value):
        self.value = value

    def __lt__(self, other):
        return other.value < self.value

    def __eq__(self, other):
        return self.value == other.value


def _sort_key(keys: List[Tuple[Callable[[Any], Any], bool, bool]]) -> Callable[[Any], tuple]:
    def key(row):
        parts = []
        for pick, ascending, nulls_last in keys:
            value = pick(row)
            if value is None:
                parts.append((nulls_last, None))
            else:
                parts.append((not nulls_last, value if ascending else _Descending(value)))
        return tuple(parts)
    return key


# Local stages. Each one receives its arguments when the pipeline is built
# and reads rows only when iterated.

def _filter(rows: Iterable[Any], predicate: Any) -> Iterator[Any]:
    test = _as_function(predicate)
    for row in rows:
        if test(row):
            yield row


def _project(rows: Iterable[Any], selector: Any) -> Iterator[Any]:
    select = _as_function(selector)
    for row in rows:
        yield select(row)


def _project_many(rows: Iterable[Any], selector: Any) -> Iterator[Any]:
    select = _as_function(selector)
    for row in rows:
        yield from select(row)


def _sorted(rows: Iterable[Any], steps: List[_Step]) -> Iterator[Any]:
    keys = [(_as_function(step.args[0]), step.options['ascending'], step.options['nulls_last']) for step in steps]
    # list.sort is stable, so equal keys keep their input order in both directions
    ordered = list(rows)
    ordered.sort(key=_sort_key(keys))
    yield from ordered


def _dedup(rows: Iterable[Any], key_selector: Any) -> Iterator[Any]:
    key_of = _as_function(key_selector)
    seen = set()
    for row in rows:
        key = key_of(row)
        if key not in seen:
            seen.add(key)
            yield row


def _skip(rows: Iterable[Any], n: int) -> Iterator[Any]:
    return islice(rows, max(n, 0), None)


def _take(rows: Iterable[Any], n: int) -> Iterator[Any]:
    return islice(rows, max(n, 0))


def _group(rows: Iterable[Any], key_selector: Any, element_selector: Any) -> Iterator[Grouping]:
    key_of, element_of = _as_function(key_selector), _as_function(element_selector)
    # dicts keep insertion order, so groups come out in first-seen order
    groups: Dict[Any, List[Any]] = {}
    for row in rows:
        groups.setdefault(key_of(row), []).append(element_of(row))
    for key, elements in groups.items():
        yield Grouping(key, elements)


def _pair(outer, matches):
    return outer, matches


def _group_join(rows: Iterable[Any], inner: Iterable[Any], outer_key: Any, inner_key: Any,
                result_selector: Optional[Callable[[Any, List[Any]], Any]]) -> Iterator[Any]:
    outer_key_of, inner_key_of = _as_function(outer_key), _as_function(inner_key)
    combine = result_selector or _pair
    matches_by_key: Dict[Any, List[Any]] = {}
    for item in inner:
        matches_by_key.setdefault(inner_key_of(item), []).append(item)
    for row in rows:
        yield combine(row, list(matches_by_key.get(outer_key_of(row), ())))


def _default_if_empty(rows: Iterable[Any], default: Any) -> Iterator[Any]:
    empty = True
    for row in rows:
        empty = False
        yield row
    if empty:
        yield default


_STAGES: Dict[str, Callable[..., Iterator[Any]]] = {
    'where': _filter,
    'select': _project,
    'select_many': _project_many,
    'distinct': _dedup,
    'skip': _skip,
    'take': _take,
    'group_by': _group,
    'group_join': _group_join,
    'default_if_empty': _default_if_empty,
}


def _plan_node(step: _Step, based_on: QueryPlan) -> Optional[QueryPlan]:
    """The plan node equivalent to `step`, or None when it must run locally."""
    spec = step.args[0] if step.args else None
    if step.name == 'where' and isinstance(spec, _Predicate) and spec.pushable:
        return WherePlan(filter=spec.expression(), based_on=based_on)
    # SelectPlan reads plain strings as source paths, so those selects stay local
    if step.name == 'select' and isinstance(spec, dict) and not any(isinstance(v, str) for v in spec.values()):
        return SelectPlan(fields={name: _as_function(v) for name, v in spec.items()}, based_on=based_on)
    return None


class Queryable(Generic[T]):
    """
    Lazy LINQ-like pipeline over an iterable or a QueryPlan.

    Intermediate operators return a new Queryable and leave the receiver as it
    was; the pipeline runs again each time a terminal operator (or iteration)
    consumes it.
    """

    def __init__(self, source: Iterable[T] | QueryPlan, plan: Optional[Iterable[_Step]] = None,
                 policy: Optional[Policy] = None):
        self._source = source
        self._steps: Tuple[_Step, ...] = tuple(plan or ())
        self._policy = policy or Policy()

    @property
    def policy(self) -> Policy:
        return self._policy

    def _then(self, name: str, *args, **options) -> Queryable:
        return Queryable(self._source, self._steps + (_Step(name, args, options),), self._policy)

    def with_policy(self, policy: Policy) -> Queryable[T]:
        return Queryable(self._source, self._steps, policy)

    def on_unsupported(self, mode: str) -> Queryable[T]:
        return self.with_policy(replace(self._policy, on_unsupported=mode))

    # Intermediate operators

    def where(self, predicate) -> Queryable[T]:
        return self._then("where", predicate)

    def select(self, selector) -> Queryable:
        return self._then("select", selector)

    def select_many(self, selector) -> Queryable:
        return self._then("select_many", selector)

    def order_by(self, key_selector, ascending: bool = True, nulls_last: bool = True) -> Queryable[T]:
        return self._then("order_by", key_selector, ascending=ascending, nulls_last=nulls_last)

    def order_by_descending(self, key_selector, nulls_last: bool = True) -> Queryable[T]:
        return self.order_by(key_selector, ascending=False, nulls_last=nulls_last)

    def then_by(self, key_selector, ascending: bool = True, nulls_last: bool = True) -> Queryable[T]:
        if not self._steps or self._steps[-1].name not in ('order_by', 'then_by'):
            raise LinqValidationException(message="then_by() must follow order_by() or then_by()")
        return self._then("then_by", key_selector, ascending=ascending, nulls_last=nulls_last)

    def distinct(self, key_selector=None) -> Queryable[T]:
        return self._then("distinct", key_selector)

    def skip(self, n: int) -> Queryable[T]:
        return self._then("skip", n)

    def take(self, n: int) -> Queryable[T]:
        return self._then("take", n)

    def group_by(self, key_selector, element_selector=None) -> Queryable[Grouping]:
        return self._then("group_by", key_selector, element_selector)

    def group_join(self, inner: Iterable[U], outer_key_selector, inner_key_selector,
                   result_selector: Optional[Callable[[T, List[U]], V]] = None) -> Queryable[V]:
        """
        Left outer join: every outer element comes out exactly once, together
        with the (possibly empty) list of inner elements sharing its key.
        Without a result_selector the result is an (outer, matches) tuple.
        """
        return self._then("group_join", inner, outer_key_selector, inner_key_selector, result_selector)

    def default_if_empty(self, default: T = None) -> Queryable[T]:
        return self._then("default_if_empty", default)

    # Execution

    def _split(self) -> Tuple[Optional[QueryPlan], int]:
        """Fold the leading pushable steps into plan nodes over a QueryPlan source."""
        if not isinstance(self._source, QueryPlan):
            return None, 0
        plan, pushed = self._source, 0
        for step in self._steps:
            node = _plan_node(step, plan)
            if node is None:
                break
            plan, pushed = node, pushed + 1
        return plan, pushed

    def _check_predicate(self, predicate) -> None:
        # Only a QueryPlan source could have evaluated the predicate itself
        if not isinstance(self._source, QueryPlan):
            return
        if isinstance(predicate, _Predicate) and predicate.pushable:
            return
        if self._policy.on_unsupported == 'error':
            raise LinqNotSupportedException(
                message='where() predicate can not be pushed down; build it with F '
                        '(e.g. F.amount > 1000) or use on_unsupported("warn"|"fallback")')
        if self._policy.on_unsupported == 'warn':
            warnings.warn('Evaluating where() locally over a QueryPlan source', RuntimeWarning, stacklevel=4)

    def _run_locally(self, rows: Iterable[Any], steps: Tuple[_Step, ...]) -> Iterable[Any]:
        position = 0
        while position < len(steps):
            step = steps[position]
            position += 1
            if step.name == 'order_by':
                # sort once by the order_by key plus the then_by keys after it
                sort_steps = [step]
                while position < len(steps) and steps[position].name == 'then_by':
                    sort_steps.append(steps[position])
                    position += 1
                rows = _sorted(rows, sort_steps)
                continue
            stage = _STAGES.get(step.name)
            if stage is None:
                raise LinqNotSupportedException(message=f"Unknown operator {step.name}")
            if step.name == 'where':
                self._check_predicate(step.args[0])
            rows = stage(rows, *step.args)
        return rows

    def _execute(self) -> Iterator[Any]:
        plan, pushed = self._split()
        if plan is None:
            rows: Iterable[Any] = self._source if self._source is not None else ()
        else:
            if pushed:
                _logger.debug("Pushed %d step(s) down into %s", pushed, type(plan).__name__)
            rows = plan.optimize().execute()
        rows = self._run_locally(rows, self._steps[pushed:])

        limit = self._policy.max_rows_local
        deadline = time.monotonic() + self._policy.timeout_ms / 1000 if self._policy.timeout_ms else None
        for produced, row in enumerate(rows, 1):
            if deadline is not None and time.monotonic() > deadline:
                raise TimeoutError(f"Query execution exceeded {self._policy.timeout_ms} ms")
            if limit and produced > limit:
                raise LinqLimitExceededException(message=f"Local execution exceeded max_rows_local ({limit})")
            yield row

    def __iter__(self) -> Iterator[T]:
        return self._execute()

    # Terminal operators

    def to_list(self) -> List[T]:
        return list(self._execute())

    def to_set(self) -> Set[T]:
        return set(self._execute())

    def to_dict(self, key_selector, value_selector=None) -> Dict[Any, Any]:
        if key_selector is None:
            raise ValueError("to_dict requires a key_selector")
        key_of, value_of = _as_function(key_selector), _as_function(value_selector)
        result: Dict[Any, Any] = {}
        for row in self._execute():
            key = key_of(row)
            if key in result:
                raise ValueError(f"Duplicate key in to_dict: {key!r}")
            result[key] = value_of(row)
        return result

    def to_arrow(self, columns: Optional[List[str]] = None) -> Any:
        return to_arrow(self._execute(), columns=columns)

    def _narrowed(self, predicate) -> Queryable[T]:
        return self if predicate is None else self.where(predicate)

    def first(self, predicate=None) -> T:
        row = next(iter(self._narrowed(predicate)), _MISSING)
        if row is _MISSING:
            raise ValueError("first() of empty sequence")
        return row

    def first_or_default(self, default: Optional[T] = None, predicate=None) -> Optional[T]:
        return next(iter(self._narrowed(predicate)), default)

    def any(self, predicate=None) -> bool:
        return next(iter(self._narrowed(predicate)), _MISSING) is not _MISSING

    def all(self, predicate) -> bool:
        test = _as_function(predicate)
        return all(test(row) for row in self._execute())

    def count(self, predicate=None) -> int:
        return sum(1 for _ in self._narrowed(predicate))

    def sum(self, selector=None) -> Any:
        """Sum of the selected values; None values are skipped and the value type is kept."""
        return _total(map(_as_function(selector), self._execute()))[0]

    def average(self, selector=None) -> Any:
        """Mean of the non-None selected values, 0 when there are none. Decimals give a Decimal."""
        return _mean(map(_as_function(selector), self._execute()))

    def _extreme(self, selector, better: Callable[[Any, Any], bool], name: str) -> Any:
        pick = _as_function(selector)
        best = _MISSING
        for row in self._execute():
            value = pick(row)
            if best is _MISSING or better(value, best):
                best = value
        if best is _MISSING:
            raise ValueError(f"{name}() of empty sequence")
        return best

    def min(self, selector=None) -> Any:
        return self._extreme(selector, lambda value, best: value < best, "min")

    def max(self, selector=None) -> Any:
        return self._extreme(selector, lambda value, best: value > best, "max")

    def explain(self, format: str = "text") -> str | dict:
        """
        Describe which steps run inside the QueryPlan and which run locally,
        as text (`plan:... | optimized:... | local:...`) or as a dict with format="json".
        """
        plan, pushed = self._split()
        pushed_steps, local_steps = self._steps[:pushed], self._steps[pushed:]
        node = type(plan.optimize()).__name__ if pushed else None
        if format == 'json':
            return {
                "base": "QueryPlan" if isinstance(self._source, QueryPlan) else "Iterable",
                "plan_prefix": [step.describe() for step in pushed_steps],
                "optimized_node": node,
                "local_ops": [step.describe() for step in local_steps],
            }
        parts = []
        if pushed_steps:
            parts.append("plan:" + " -> ".join(step.name for step in pushed_steps))
            parts.append(f"optimized:{node}")
        if local_steps:
            parts.append("local:" + " -> ".join(step.name for step in local_steps))
        if not parts:
            return "plan: <none>" if isinstance(self._source, QueryPlan) else "local: <none>"
        return " | ".join(parts)


def from_collection(source: Iterable[T] | QueryPlan, policy: Optional[Policy] = None) -> Queryable[T]:
    """Start a Queryable over a collection, iterable or QueryPlan. A Queryable is returned as is."""
    if isinstance(source, Queryable):
        return source if policy is None else source.with_policy(policy)
    return Queryable(source, policy=policy)
