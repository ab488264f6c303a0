"""Command base class and the registry of known methods.

A command is a frozen dataclass whose class definition binds it to a remote
method name and a response format::

    @dataclass(frozen=True)
    class GetQueryCount(Command, method="get_query_count", response=Scalar(int)):
        pass

The binding happens once, when the class is created, and never changes at
call time.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from jqdata.errors import EncodeError
from jqdata.formats import ResponseFormat


@dataclass(frozen=True)
class CommandDescriptor:
    method: str
    response: ResponseFormat


COMMANDS: dict[str, type[Command]] = {}


class Command:
    """Base class for every request sent to the JQData endpoint."""

    descriptor: ClassVar[CommandDescriptor]

    def __init_subclass__(cls, *, method: str, response: ResponseFormat, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        if not isinstance(response, ResponseFormat):
            raise TypeError(f"{cls.__name__}: response must be a ResponseFormat")
        if method in COMMANDS:
            raise TypeError(
                f"{cls.__name__}: method '{method}' already bound to {COMMANDS[method].__name__}"
            )
        cls.descriptor = CommandDescriptor(method=method, response=response)
        COMMANDS[method] = cls

    @classmethod
    def method(cls) -> str:
        return cls.descriptor.method

    @classmethod
    def response_format(cls) -> ResponseFormat:
        return cls.descriptor.response

    def fields(self) -> dict[str, Any]:
        """Return the command's wire fields. ``None`` values are omitted."""
        if not dataclasses.is_dataclass(self):
            raise EncodeError(f"{type(self).__name__} is not a dataclass command")
        out: dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[f.metadata.get("column", f.name)] = _wire_value(value)
        return out


def _wire_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def lookup(method: str) -> type[Command]:
    """Return the command class registered for ``method``."""
    try:
        return COMMANDS[method]
    except KeyError:
        raise KeyError(f"No command registered for method '{method}'") from None
