"""Two-variant outcome type shared by every pipeline step.

A step returns ``Ok(value)`` or ``Err(error)``. Both are frozen dataclasses,
so callers can ``match`` on them:

    match await extract_change_set(repo, settings.git):
        case Err() as err:
            return err
        case Ok(change_set):
            ...
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, NoReturn, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        return Ok(fn(self.value))

    def map_err(self, fn: Callable[[Any], Any]) -> "Ok[T]":
        return self

    def and_then(self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        return fn(self.value)

    async def and_then_async(self, fn: Callable[[T], Awaitable["Result[U, E]"]]) -> "Result[U, E]":
        return await fn(self.value)

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: Any) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def map(self, fn: Callable[[Any], Any]) -> "Err[E]":
        return self

    def map_err(self, fn: Callable[[E], F]) -> "Err[F]":
        return Err(fn(self.error))

    def and_then(self, fn: Callable[[Any], Any]) -> "Err[E]":
        return self

    async def and_then_async(self, fn: Callable[[Any], Awaitable[Any]]) -> "Err[E]":
        return self

    def unwrap(self) -> NoReturn:
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(f"Called unwrap() on Err: {self.error!r}")

    def unwrap_or(self, default: U) -> U:
        return default


Result = Union[Ok[T], Err[E]]
