"""Body consumers: turn a raw response body into a typed result.

The service answers every method on the same endpoint, but each method uses
one of four wire shapes. Failures are signalled in-band: the body (or, for
CSV bodies, the first header cell) starts with the literal ``error``.

Known asymmetry: line-list bodies are not checked for the sentinel. A server
error for a line-format method comes back as a one-element list holding the
error text, and callers of those methods inspect the content themselves.

Typed results are validated with pydantic: CSV records and JSON documents go
through a ``TypeAdapter`` for the target type, and validation failures become
``DecodeError``.
"""

from __future__ import annotations

import csv
import io
import logging
from functools import lru_cache
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError

from jqdata.errors import DecodeError, ServerError
from jqdata.formats import FormatKind, ResponseFormat

logger = logging.getLogger(__name__)

ERROR_SENTINEL = "error"


def is_error_text(text: str) -> bool:
    return text.startswith(ERROR_SENTINEL)


def read_text(body: bytes | str) -> str:
    if isinstance(body, str):
        return body
    try:
        return bytes(body).decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Response body is not valid UTF-8: {e}") from e


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def _describe(error: dict[str, Any], skip: int = 0) -> str:
    loc = ".".join(str(p) for p in error["loc"][skip:])
    return f"field '{loc}': {error['msg']}" if loc else error["msg"]


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", repr(tp))


def consume_tabular(body: bytes | str, row_type: type) -> list[Any]:
    """Decode a CSV body: a header line followed by one record per line.

    Blank lines are skipped, before the header as well as between records.
    """
    text = read_text(body)
    reader = csv.reader(io.StringIO(text))
    header: list[str] = []
    records: list[dict[str, str]] = []
    line_nums: list[int] = []
    try:
        for record in reader:
            if record:
                header = record
                break
        if header and is_error_text(header[0]):
            first = next(line for line in text.split("\n") if line.strip())
            raise ServerError(first.rstrip("\r"))
        for record in reader:
            if not record:
                continue
            if len(record) != len(header):
                raise DecodeError(
                    f"Line {reader.line_num}: expected {len(header)} fields, got {len(record)}"
                )
            records.append(dict(zip(header, record)))
            line_nums.append(reader.line_num)
    except csv.Error as e:
        raise DecodeError(f"Malformed CSV at line {reader.line_num}: {e}") from e

    if not header:
        raise ServerError("empty response body")

    try:
        rows = _adapter(list[row_type]).validate_python(records)
    except ValidationError as e:
        error = e.errors()[0]
        line = line_nums[error["loc"][0]]
        raise DecodeError(f"Line {line}: {_describe(error, skip=1)}") from e

    logger.debug(f"Decoded {len(rows)} {row_type.__name__} rows")
    return rows


def consume_lines(body: bytes | str, _target: Any = str) -> list[str]:
    """Split a body into lines. A trailing newline does not add an element."""
    text = read_text(body)
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def consume_scalar(body: bytes | str, value_type: type) -> Any:
    """Parse the whole body as a single value of ``value_type``."""
    text = read_text(body)
    if is_error_text(text):
        raise ServerError(text)
    raw = text.strip()
    if value_type is str:
        return raw
    try:
        return _adapter(value_type).validate_python(raw)
    except ValidationError as e:
        raise DecodeError(
            f"Cannot parse {raw!r} as {_type_name(value_type)}: {_describe(e.errors()[0])}"
        ) from e


def consume_json(body: bytes | str, result_type: Any = dict) -> Any:
    """Parse a JSON document into ``result_type``."""
    text = read_text(body)
    if is_error_text(text.lstrip()):
        raise ServerError(text)
    try:
        return _adapter(result_type).validate_json(text)
    except ValidationError as e:
        error = e.errors()[0]
        if error["type"] == "json_invalid":
            raise DecodeError(f"Malformed JSON body: {error['msg']}") from e
        raise DecodeError(
            f"JSON body does not match {_type_name(result_type)}: {_describe(error)}"
        ) from e


CONSUMERS: dict[FormatKind, Callable[[bytes | str, Any], Any]] = {
    FormatKind.TABULAR: consume_tabular,
    FormatKind.LINE_LIST: consume_lines,
    FormatKind.SCALAR: consume_scalar,
    FormatKind.JSON_OBJECT: consume_json,
}


def consume_body(response_format: ResponseFormat, body: bytes | str) -> Any:
    """Decode ``body`` with the strategy selected by ``response_format``."""
    consumer = CONSUMERS[response_format.kind]
    return consumer(body, response_format.target)
