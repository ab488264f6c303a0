from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

import requests

from jqdata.consumers import is_error_text, read_text
from jqdata.errors import NoCredentialError, ServerError, TransportError
from jqdata.utils.env import load_env_file_if_present

logger = logging.getLogger(__name__)

API_URL = "https://dataapi.joinquant.com/apis"
JSON_HEADERS = {"Content-Type": "application/json"}

MOB_ENV = "JQDATA_MOB"
PWD_ENV = "JQDATA_PWD"
TOKEN_ENV = "JQDATA_TOKEN"
URL_ENV = "JQDATA_URL"

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class Credential:
    """Mobile number and password used to obtain tokens."""

    mob: str = field(repr=False)
    pwd: str = field(repr=False)


@dataclass(frozen=True)
class TokenSnapshot:
    """The token as of one point in time. Replaced wholesale, never mutated."""

    value: str = field(repr=False)
    generation: int = 0
    issued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TokenCache:
    """Holds exactly one token snapshot.

    Reads return the current snapshot without blocking on any I/O; the lock
    is held only while a new snapshot is installed.
    """

    def __init__(self, token: str):
        self._lock = threading.Lock()
        self._snapshot = TokenSnapshot(value=token)

    def snapshot(self) -> TokenSnapshot:
        return self._snapshot

    @property
    def token(self) -> str:
        return self._snapshot.value

    def replace(self, token: str) -> TokenSnapshot:
        with self._lock:
            new = TokenSnapshot(value=token, generation=self._snapshot.generation + 1)
            self._snapshot = new
        logger.info(f"Installed token snapshot generation {new.generation} (len={len(token)})")
        return new


def token_method(reuse: bool) -> str:
    return "get_current_token" if reuse else "get_token"


def build_token_request(credential: Credential, reuse: bool = True) -> dict[str, str]:
    """Body of the token exchange request.

    ``get_current_token`` returns the account's live token if one exists;
    ``get_token`` always issues a new one.
    """
    return {"method": token_method(reuse), "mob": credential.mob, "pwd": credential.pwd}


def parse_token_response(body: bytes | str) -> str:
    text = read_text(body)
    if is_error_text(text):
        raise ServerError(text)
    if not text:
        raise ServerError("empty response body")
    return text


def get_token(
    credential: Credential,
    reuse: bool = True,
    session: requests.Session | None = None,
    api_url: str = API_URL,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> str:
    """Exchange a credential for a token over HTTP.

    Raises ServerError when the service answers with the error sentinel and
    TransportError when the request itself fails.
    """
    payload = json.dumps(build_token_request(credential, reuse))
    post = session.post if session is not None else requests.post
    try:
        res = post(api_url, data=payload, headers=JSON_HEADERS, timeout=timeout)
        body = res.content
    except requests.RequestException as e:
        raise TransportError(f"Token exchange failed: {e}") from e
    token = parse_token_response(body)
    logger.info(f"Obtained token via {token_method(reuse)} (len={len(token)})")
    return token


def load_credential(dotenv: bool = True) -> Credential:
    """Return the credential from ``JQDATA_MOB``/``JQDATA_PWD`` or .env.

    Raises NoCredentialError if either is missing.
    """
    if dotenv:
        load_env_file_if_present()
    mob = os.getenv(MOB_ENV)
    pwd = os.getenv(PWD_ENV)
    if not mob or not pwd:
        raise NoCredentialError(
            f"Missing credential. Set {MOB_ENV} and {PWD_ENV} in environment or .env"
        )
    return Credential(mob=mob, pwd=pwd)


def load_token(dotenv: bool = True) -> str | None:
    if dotenv:
        load_env_file_if_present()
    return os.getenv(TOKEN_ENV) or None


def load_api_url(dotenv: bool = True) -> str:
    if dotenv:
        load_env_file_if_present()
    return os.getenv(URL_ENV) or API_URL
