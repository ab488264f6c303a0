from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from jqdata.errors import EncodeError


def build_envelope(fields: Any, method: str, token: str) -> dict[str, Any]:
    """Merge command fields with ``method`` and ``token`` into one flat object.

    ``method`` and ``token`` win over command fields of the same name.
    """
    if not isinstance(fields, Mapping):
        raise EncodeError(
            f"Command fields must serialize to a JSON object, got {type(fields).__name__}"
        )
    envelope = dict(fields)
    envelope["method"] = method
    envelope["token"] = token
    return envelope


def encode_envelope(envelope: Mapping[str, Any]) -> bytes:
    try:
        return json.dumps(envelope, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Envelope is not JSON serializable: {e}") from e


def command_envelope(command: Any, token: str) -> dict[str, Any]:
    """Build the envelope for a ``Command`` instance."""
    fields = getattr(command, "fields", None)
    if fields is None or not hasattr(type(command), "descriptor"):
        raise EncodeError(f"{type(command).__name__} is not a registered command")
    return build_envelope(fields(), type(command).method(), token)


def encode_command(command: Any, token: str) -> bytes:
    return encode_envelope(command_envelope(command, token))
