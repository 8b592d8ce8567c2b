"""Interfaces and concrete implementations shared by the tests."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sized
from typing import TYPE_CHECKING, Any, Protocol, overload

from anonymous import Out, InOut, event

if TYPE_CHECKING:
    from decimal import Decimal


class Greeter(ABC):
    @abstractmethod
    def say_hi(self, name: str) -> str: ...


class Counter(ABC):
    @property
    @abstractmethod
    def count(self) -> int: ...

    @abstractmethod
    def increment(self) -> None: ...


class RealCounter(Counter):
    def __init__(self) -> None:
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def increment(self) -> None:
        self._count += 1


class Writer(ABC):
    @overload
    def write(self, text: str) -> None: ...

    @overload
    def write(self, level: int, text: str) -> None: ...

    @abstractmethod
    def write(self, *args: Any) -> None: ...


class Calculator(ABC):
    @overload
    def add(self, a: int) -> int: ...

    @overload
    def add(self, a: int, b: int) -> int: ...

    @abstractmethod
    def add(self, *args: int) -> int: ...

    @abstractmethod
    def reset(self) -> None: ...


class RealCalculator(Calculator):
    def __init__(self) -> None:
        self.total = 0

    def add(self, a: int, b: int | None = None) -> int:
        self.total += a + (b or 0)
        return self.total

    def reset(self) -> None:
        self.total = 0


class Settings(ABC):
    @property
    @abstractmethod
    def title(self) -> str: ...

    @title.setter
    @abstractmethod
    def title(self, value: str) -> None: ...


class RealSettings(Settings):
    def __init__(self, title: str = "untitled") -> None:
        self._title = title

    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, value: str) -> None:
        self._title = value


class Lookup(ABC):
    @abstractmethod
    def __getitem__(self, key: str) -> int: ...

    @abstractmethod
    def __setitem__(self, key: str, value: int) -> None: ...


class RealLookup(Lookup):
    def __init__(self, **values: int) -> None:
        self.values = dict(values)

    def __getitem__(self, key: str) -> int:
        return self.values[key]

    def __setitem__(self, key: str, value: int) -> None:
        self.values[key] = value


class Notifier(ABC):
    changed = event(Callable[[str], None])

    @abstractmethod
    def notify(self, message: str) -> None: ...


class RealNotifier(Notifier):
    def notify(self, message: str) -> None:
        self.changed.fire(message)


class Parser(ABC):
    @abstractmethod
    def try_parse(self, text: str, result: Out[int]) -> bool: ...

    @abstractmethod
    def bump(self, counter: InOut[int]) -> None: ...


class Named(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...


class Runner(ABC):
    @abstractmethod
    def run(self) -> str: ...

    @abstractmethod
    def stop(self) -> None: ...


class FastRunner(Runner):
    """Re-declares ``run``, shadowing the base declaration."""

    @abstractmethod
    def run(self) -> str: ...

    @abstractmethod
    def sprint(self, meters: int) -> float: ...


class NamedRunner(Named, Runner):
    @abstractmethod
    def describe(self) -> str: ...


class Shape(Protocol):
    label: str

    def area(self) -> float: ...


class Square:
    def __init__(self, side: float) -> None:
        self.side = side
        self.label = "square"

    def area(self) -> float:
        return self.side * self.side


class Failing(ABC):
    @abstractmethod
    def explode(self) -> None: ...


class Concrete:
    def run(self) -> str:
        return "concrete"


class Scanner(ABC):
    """``Decimal`` is only imported for type checkers."""

    @abstractmethod
    def scan(self, text: str, result: Out[int], precision: Decimal) -> bool: ...

    @abstractmethod
    def round(self, amount: InOut[Decimal]) -> None: ...


class Reading(Protocol):
    unit: str
    value: Decimal


class Closable(ABC):
    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def _close_impl(self) -> None: ...


class Bag(Sized, ABC):
    @abstractmethod
    def add(self, item: str) -> None: ...


class RealBag(Bag):
    def __init__(self) -> None:
        self.items: list[str] = []

    def __len__(self) -> int:
        return len(self.items)

    def add(self, item: str) -> None:
        self.items.append(item)


class Factory(ABC):
    @staticmethod
    @abstractmethod
    def version() -> int: ...

    @classmethod
    @abstractmethod
    def default_name(cls) -> str: ...
