"""
Failure trees.

A failed tool operation is described as a tree:

  Fail(error)              expected, typed failure from the taxonomy
  Die(defect)              unexpected exception (a bug)
  Interrupt()              cancellation
  Empty()                  no failure recorded
  Sequential(left, right)  ``right`` happened after ``left`` (chained exceptions)
  Parallel(left, right)    concurrent failures (exception groups)

``from_exception`` builds a tree from whatever the operation raised.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Iterator, List, Union

from huly_mcp.errors import HulyDomainError


@dataclass(frozen=True)
class Fail:
    error: Any


@dataclass(frozen=True)
class Die:
    defect: Any


@dataclass(frozen=True)
class Interrupt:
    pass


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Sequential:
    left: "Cause"
    right: "Cause"


@dataclass(frozen=True)
class Parallel:
    left: "Cause"
    right: "Cause"


Cause = Union[Fail, Die, Interrupt, Empty, Sequential, Parallel]

EMPTY = Empty()


def sequential(*causes: Cause) -> Cause:
    """Left-fold ``causes`` into ``Sequential`` nodes, dropping empties."""
    return _fold(Sequential, causes)


def parallel(*causes: Cause) -> Cause:
    """Left-fold ``causes`` into ``Parallel`` nodes, dropping empties."""
    return _fold(Parallel, causes)


def _fold(node, causes) -> Cause:
    result: Cause = EMPTY
    for cause in causes:
        if isinstance(cause, Empty):
            continue
        result = cause if isinstance(result, Empty) else node(result, cause)
    return result


def leaves(cause: Cause) -> Iterator[Cause]:
    """Yield the non-composite nodes of ``cause``, left before right.

    Iterative, so arbitrarily deep trees do not hit the recursion limit.
    """
    stack: List[Cause] = [cause]
    while stack:
        node = stack.pop()
        if isinstance(node, (Sequential, Parallel)):
            stack.append(node.right)
            stack.append(node.left)
        else:
            yield node


def _chain(exc: BaseException) -> List[BaseException]:
    # Oldest first: the context of an exception happened before it.
    chain: List[BaseException] = []
    seen = set()
    current = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    chain.reverse()
    return chain


def _single(exc: BaseException) -> Cause:
    if isinstance(exc, BaseExceptionGroup):
        return parallel(*(from_exception(inner) for inner in exc.exceptions))
    if isinstance(exc, asyncio.CancelledError):
        return Interrupt()
    if isinstance(exc, HulyDomainError):
        return Fail(exc)
    return Die(exc)


def from_exception(exc: BaseException) -> Cause:
    """Build the failure tree for an exception raised by an operation.

    Taxonomy errors become ``Fail``, cancellation becomes ``Interrupt``,
    exception groups become ``Parallel`` and anything else is a ``Die``.
    Chained exceptions (``raise ... from ...`` or raising while handling)
    become ``Sequential(earlier, later)``.
    """
    return sequential(*(_single(link) for link in _chain(exc)))
