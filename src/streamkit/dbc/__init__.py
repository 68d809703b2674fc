# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Design by contract utilities for :mod:`streamkit`.

Contracts are inert unless enabled through the ``STREAMKIT_DBC`` environment
variable or :func:`enable_dbc` / :func:`dbc_enabled`. The scanner declares its
buffer bounds with :func:`invariant` and the split functions are marked
:func:`pure`.
"""

from __future__ import annotations

import builtins
import copy
import logging
import os
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from functools import wraps
from typing import ParamSpec, TypeVar, cast

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T", bound=object)

#: Predicates return a bool, or a ``(bool, message)`` tuple for diagnostics.
ContractResult = bool | tuple[bool, str] | tuple[bool]
ContractCallable = Callable[..., ContractResult | object]

_ENV_FLAG = "STREAMKIT_DBC"
_forced_state: bool | None = None


def _coerce_flag(value: str | None) -> bool:
    if value is None:
        return False
    lowered = value.strip().lower()
    return lowered not in {"", "0", "false", "off", "no"}


def dbc_active() -> bool:
    """Return ``True`` when DbC checks should run."""

    if _forced_state is not None:
        return _forced_state
    return _coerce_flag(os.getenv(_ENV_FLAG))


def enable_dbc() -> None:
    """Force DbC enforcement on."""

    global _forced_state
    _forced_state = True


def disable_dbc() -> None:
    """Force DbC enforcement off."""

    global _forced_state
    _forced_state = False


@contextmanager
def dbc_enabled(*, active: bool = True) -> Iterator[None]:
    """Temporarily set the DbC flag inside a ``with`` block."""

    global _forced_state
    previous = _forced_state
    _forced_state = active
    try:
        yield
    finally:
        _forced_state = previous


def _qualname(target: object) -> str:
    return getattr(target, "__qualname__", repr(target))


def _normalize_contract_result(
    result: ContractResult | object,
) -> tuple[bool, str | None]:
    if isinstance(result, tuple):
        sequence_result = cast(Sequence[object], result)
        if not sequence_result:
            msg = "Contract callables must not return empty tuples"
            raise TypeError(msg)
        message = None if len(sequence_result) == 1 else str(sequence_result[1])
        return bool(sequence_result[0]), message
    return bool(result), None


def _check_invariants(
    predicates: tuple[ContractCallable, ...],
    *,
    instance: object,
    func: Callable[..., object],
) -> None:
    for predicate in predicates:
        _evaluate("invariant", func, predicate, (instance,), {})


def _evaluate(
    kind: str,
    func: Callable[..., object],
    predicate: ContractCallable,
    args: tuple[object, ...],
    kwargs: Mapping[str, object],
) -> None:
    outcome, detail = _normalize_contract_result(predicate(*args, **kwargs))
    if outcome:
        return
    predicate_name = getattr(predicate, "__name__", repr(predicate))
    msg = f"{kind} contract for {_qualname(func)} failed via {predicate_name}."
    if detail:
        msg = f"{msg} Details: {detail}"
    raise AssertionError(msg)


def require(*predicates: ContractCallable) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Validate preconditions against the call arguments."""

    if not predicates:
        msg = "@require expects at least one predicate"
        raise ValueError(msg)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            if dbc_active():
                for predicate in predicates:
                    _evaluate("require", func, predicate, tuple(args), dict(kwargs))
            return func(*args, **kwargs)

        return wrapped

    return decorator


def ensure(*predicates: ContractCallable) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Validate postconditions; predicates receive the arguments plus ``result``."""

    if not predicates:
        msg = "@ensure expects at least one predicate"
        raise ValueError(msg)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            result = func(*args, **kwargs)
            if dbc_active():
                for predicate in predicates:
                    _evaluate(
                        "ensure",
                        func,
                        predicate,
                        tuple(args),
                        {**kwargs, "result": result},
                    )
            return result

        return wrapped

    return decorator


def _should_wrap_invariants(attribute_name: str, attribute: object) -> bool:
    if attribute_name.startswith("_"):
        return False
    if isinstance(attribute, (staticmethod, classmethod)):
        return False
    return callable(attribute)


def _wrap_method_with_invariants(
    method: Callable[..., object],
    *,
    predicates: tuple[ContractCallable, ...],
) -> Callable[..., object]:
    @wraps(method)
    def wrapper(self: object, *args: object, **kwargs: object) -> object:
        if not dbc_active():
            return method(self, *args, **kwargs)
        _check_invariants(predicates, instance=self, func=method)
        try:
            return method(self, *args, **kwargs)
        finally:
            _check_invariants(predicates, instance=self, func=method)

    return wrapper


def invariant(*predicates: ContractCallable) -> Callable[[type[T]], type[T]]:
    """Enforce invariants after ``__init__`` and around public method calls."""

    if not predicates:
        msg = "@invariant expects at least one predicate"
        raise ValueError(msg)
    predicate_tuple = tuple(predicates)

    def decorator(cls: type[T]) -> type[T]:
        original_init = cls.__init__

        @wraps(original_init)
        def init_wrapper(self: object, *args: object, **kwargs: object) -> None:
            original_init(self, *args, **kwargs)
            if dbc_active():
                _check_invariants(predicate_tuple, instance=self, func=original_init)

        type.__setattr__(cls, "__init__", init_wrapper)
        for attribute_name, attribute in list(cls.__dict__.items()):
            if _should_wrap_invariants(attribute_name, attribute):
                setattr(
                    cls,
                    attribute_name,
                    _wrap_method_with_invariants(attribute, predicates=predicate_tuple),
                )
        return cls

    return decorator


_UNCOPYABLE = object()


def _arguments(
    args: tuple[object, ...], kwargs: Mapping[str, object]
) -> Iterator[tuple[str, object]]:
    for index, value in enumerate(args):
        yield str(index), value
    yield from kwargs.items()


def _snapshot(value: object) -> object:
    # memoryviews and OS handles cannot be copied; they are not compared.
    try:
        return copy.deepcopy(value)
    except Exception:
        return _UNCOPYABLE


def _forbidden(func: Callable[..., object], target: str) -> Callable[..., object]:
    def raiser(*args: object, **kwargs: object) -> object:
        msg = f"pure contract for {_qualname(func)} forbids calling {target}"
        raise AssertionError(msg)

    return raiser


@contextmanager
def _pure_environment(func: Callable[..., object]) -> Iterator[None]:
    targets: tuple[tuple[object, str, str], ...] = (
        (builtins, "open", "builtins.open"),
        (os, "read", "os.read"),
        (os, "write", "os.write"),
        (logging.Logger, "_log", "logging"),
    )
    saved = [(owner, name, getattr(owner, name)) for owner, name, _ in targets]
    for owner, name, label in targets:
        setattr(owner, name, _forbidden(func, label))
    try:
        yield
    finally:
        for owner, name, original in saved:
            setattr(owner, name, original)


def pure(func: Callable[P, R]) -> Callable[P, R]:  # noqa: UP047
    """Validate that the wrapped callable behaves like a pure function.

    Arguments that can be deep-copied are compared before and after the call;
    file I/O and logging inside the call fail the contract.
    """

    @wraps(func)
    def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
        if not dbc_active():
            return func(*args, **kwargs)

        before = {key: _snapshot(value) for key, value in _arguments(args, kwargs)}
        with _pure_environment(func):
            result = func(*args, **kwargs)

        for key, value in _arguments(args, kwargs):
            snapshot = before[key]
            if snapshot is not _UNCOPYABLE and value != snapshot:
                msg = (
                    f"pure contract for {_qualname(func)} detected mutation "
                    f"of argument {key}"
                )
                raise AssertionError(msg)
        return result

    return wrapped


__all__ = [
    "ContractResult",
    "dbc_active",
    "dbc_enabled",
    "disable_dbc",
    "enable_dbc",
    "ensure",
    "invariant",
    "pure",
    "require",
]
