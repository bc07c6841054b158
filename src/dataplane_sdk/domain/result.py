"""Success/failure container used for expected failure paths."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, NoReturn, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(slots=True, frozen=True)
class Result(Generic[T]):
    """Either a value (success) or a cause (failure).

    Failing results short-circuit `map`, `compose` and `compose_async`, so
    the original cause travels unchanged to whoever inspects the result.
    """

    _value: T | None = None
    _cause: Exception | None = None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        """Build a successful result, optionally without a value."""

        return cls(_value=value)

    @classmethod
    def failure(cls, cause: Exception) -> Result[Any]:
        """Build a failed result carrying `cause`."""

        if cause is None:
            raise ValueError("A failed result requires a cause.")
        return cls(_cause=cause)

    @property
    def value(self) -> T | None:
        """Return the carried value; only meaningful on success."""

        if self._cause is not None:
            raise ValueError(f"Failed result has no value: {self._cause!r}")
        return self._value

    @property
    def cause(self) -> Exception | None:
        """Return the failure cause, `None` on success."""

        return self._cause

    def succeeded(self) -> bool:
        return self._cause is None

    def failed(self) -> bool:
        return self._cause is not None

    def map(self, transform: Callable[[T], U]) -> Result[U]:
        """Replace the value with `transform(value)` on success."""

        if self._cause is not None:
            return Result(_cause=self._cause)
        return Result(_value=transform(self._value))  # type: ignore[arg-type]

    def compose(self, step: Callable[[T], Result[U]]) -> Result[U]:
        """Thread the value through another fallible step."""

        if self._cause is not None:
            return Result(_cause=self._cause)
        return step(self._value)  # type: ignore[arg-type]

    async def compose_async(self, step: Callable[[T], Awaitable[Result[U]]]) -> Result[U]:
        """Await another fallible step on success."""

        if self._cause is not None:
            return Result(_cause=self._cause)
        return await step(self._value)  # type: ignore[arg-type]

    def or_else_raise(
        self,
        cause_mapper: Callable[[Exception], BaseException] | None = None,
    ) -> T | None:
        """Return the value or raise the (optionally mapped) cause."""

        if self._cause is None:
            return self._value
        self._raise(cause_mapper)

    def _raise(self, cause_mapper: Callable[[Exception], BaseException] | None) -> NoReturn:
        assert self._cause is not None
        if cause_mapper is None:
            raise self._cause
        raise cause_mapper(self._cause) from self._cause


__all__ = ["Result"]
