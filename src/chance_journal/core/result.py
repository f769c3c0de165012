"""Explicit success/failure results for store operations.

Stores raise :class:`~chance_journal.core.errors.JournalError` subclasses.
Callers that prefer branching over ``try`` blocks wrap the call with
:func:`attempt`::

    outcome = attempt(store.add, record_input)
    if outcome.ok:
        show(outcome.value)
    else:
        flash(str(outcome.error))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from .errors import JournalError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or the journal error that prevented it."""

    value: T | None = None
    error: JournalError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T | None:
        """Return the value, re-raising the captured error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value


def attempt(fn: Callable[..., T], *args: object, **kwargs: object) -> Outcome[T]:
    """Call *fn* and capture any :class:`JournalError` it raises.

    Anything that is not a journal error is a bug and propagates.
    """
    try:
        return Outcome(value=fn(*args, **kwargs))
    except JournalError as exc:
        return Outcome(error=exc)
