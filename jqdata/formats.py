"""Response formats understood by the body consumers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FormatKind(str, Enum):
    TABULAR = "csv"
    LINE_LIST = "line"
    SCALAR = "single"
    JSON_OBJECT = "json"


@dataclass(frozen=True)
class ResponseFormat:
    """Wire shape of a command's response plus the type it decodes into.

    ``target`` is the row type for tabular bodies, the scalar type for single
    values and the result type for JSON documents. Line lists always decode
    into ``list[str]`` and carry no target.
    """

    kind: FormatKind
    target: Any = None

    @classmethod
    def tabular(cls, row_type: type) -> ResponseFormat:
        return cls(FormatKind.TABULAR, row_type)

    @classmethod
    def line_list(cls) -> ResponseFormat:
        return cls(FormatKind.LINE_LIST, str)

    @classmethod
    def scalar(cls, value_type: type) -> ResponseFormat:
        return cls(FormatKind.SCALAR, value_type)

    @classmethod
    def json_object(cls, result_type: type = dict) -> ResponseFormat:
        return cls(FormatKind.JSON_OBJECT, result_type)


Tabular = ResponseFormat.tabular
LineList = ResponseFormat.line_list
Scalar = ResponseFormat.scalar
JsonObject = ResponseFormat.json_object
