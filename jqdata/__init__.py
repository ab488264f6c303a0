"""JQData client.

This package provides:
- Typed commands for every JQData API method (``jqdata.models``)
- Response decoding for the CSV, line, single-value and JSON body formats
- Blocking (``JqdataClient``) and asyncio (``AsyncJqdataClient``) clients
  sharing one token-refresh discipline
"""

from jqdata.aio import AsyncJqdataClient
from jqdata.client import JqdataClient
from jqdata.command import Command, CommandDescriptor
from jqdata.errors import (
    DecodeError,
    EncodeError,
    JqdataError,
    NoCredentialError,
    ServerError,
    TransportError,
)
from jqdata.formats import FormatKind, JsonObject, LineList, ResponseFormat, Scalar, Tabular
from jqdata import models

__all__ = [
    "models",
    "JqdataClient",
    "AsyncJqdataClient",
    "Command",
    "CommandDescriptor",
    "ResponseFormat",
    "FormatKind",
    "Tabular",
    "LineList",
    "Scalar",
    "JsonObject",
    "JqdataError",
    "TransportError",
    "ServerError",
    "DecodeError",
    "EncodeError",
    "NoCredentialError",
]
