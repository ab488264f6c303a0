from __future__ import annotations

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jqdata.auth import (
    API_URL,
    DEFAULT_TIMEOUT,
    JSON_HEADERS,
    Credential,
    TokenCache,
    TokenSnapshot,
    get_token,
    load_api_url,
    load_credential,
    load_token,
)
from jqdata.command import Command
from jqdata.consumers import consume_body
from jqdata.envelope import encode_command
from jqdata.errors import NoCredentialError, ServerError, TransportError

logger = logging.getLogger(__name__)

def _session_without_retries(pool_maxsize: int = 10) -> requests.Session:
    """Pooled session that never retries on its own; retries are a caller decision."""
    sess = requests.Session()
    retries = Retry(total=0, read=False, raise_on_status=False)
    adapter = HTTPAdapter(pool_maxsize=pool_maxsize, max_retries=retries)
    sess.mount("http://", adapter)
    sess.mount("https://", adapter)
    return sess


def decode_response(command: Command, status_code: int, body: bytes) -> Any:
    """Decode a response body with the command's declared format.

    The service reports failures in the body, so the HTTP status is only
    logged.
    """
    if status_code != 200:
        logger.warning(f"{command.method()} returned HTTP {status_code}; decoding body anyway")
    return consume_body(type(command).response_format(), body)


class JqdataClient:
    """Blocking JQData client.

    All methods share one endpoint; the command object decides the method
    name, the request fields and how the body is decoded. The token lives in
    a ``TokenCache`` so threads sharing a client always read a complete
    token, and a refresh swaps in a new one without blocking readers.

    Examples:
        >>> client = JqdataClient.with_credential("13800000000", "secret")
        >>> securities = client.execute(GetAllSecurities(code=SecurityKind.STOCK))
        >>> count = client.execute(GetQueryCount())
    """

    def __init__(
        self,
        token: str,
        credential: Credential | None = None,
        api_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        reuse: bool = True,
        session: requests.Session | None = None,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.reuse = reuse
        self.session = session or _session_without_retries()
        self._credential = credential
        self._tokens = TokenCache(token)

    @classmethod
    def with_credential(
        cls,
        mob: str,
        pwd: str,
        *,
        reuse: bool = True,
        api_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> JqdataClient:
        """Create a client by exchanging mobile and password for a token.

        The exchange happens here, so a client never exists without a token
        the service accepted.
        """
        credential = Credential(mob=mob, pwd=pwd)
        owned = session is None
        sess = session or _session_without_retries()
        try:
            token = get_token(credential, reuse, session=sess, api_url=api_url, timeout=timeout)
        except Exception:
            if owned:
                sess.close()
            raise
        return cls(
            token,
            credential=credential,
            api_url=api_url,
            timeout=timeout,
            reuse=reuse,
            session=sess,
        )

    @classmethod
    def with_token(
        cls,
        token: str,
        *,
        api_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> JqdataClient:
        """Create a client from a token obtained elsewhere. It cannot refresh."""
        return cls(token, api_url=api_url, timeout=timeout, session=session)

    @classmethod
    def from_env(cls) -> JqdataClient:
        """Build a client from ``JQDATA_TOKEN`` or ``JQDATA_MOB``/``JQDATA_PWD``."""
        api_url = load_api_url()
        token = load_token(dotenv=False)
        if token:
            return cls.with_token(token, api_url=api_url)
        credential = load_credential(dotenv=False)
        return cls.with_credential(credential.mob, credential.pwd, api_url=api_url)

    @property
    def token(self) -> str:
        return self._tokens.token

    @property
    def has_credential(self) -> bool:
        return self._credential is not None

    def snapshot(self) -> TokenSnapshot:
        return self._tokens.snapshot()

    def refresh_token(self) -> str:
        """Obtain a new token with the stored credential and install it."""
        if self._credential is None:
            raise NoCredentialError("credential not available to refresh token")
        token = get_token(
            self._credential,
            self.reuse,
            session=self.session,
            api_url=self.api_url,
            timeout=self.timeout,
        )
        self._tokens.replace(token)
        return token

    def execute(self, command: Command) -> Any:
        """Send one command and decode its response.

        Raises TransportError, ServerError, DecodeError or EncodeError. Nothing
        is retried; a stale token surfaces as ServerError.
        """
        snapshot = self._tokens.snapshot()
        body = encode_command(command, snapshot.value)
        method = command.method()
        logger.debug(f"POST {method} ({len(body)} bytes, token generation {snapshot.generation})")
        try:
            res = self.session.post(
                self.api_url, data=body, headers=JSON_HEADERS, timeout=self.timeout
            )
            content = res.content
        except requests.RequestException as e:
            raise TransportError(f"{method} request failed: {e}") from e
        return decode_response(command, res.status_code, content)

    def execute_with_refresh(self, command: Command) -> Any:
        """Execute, and on a server error refresh the token and try once more.

        Clients built from a bare token re-raise the server error unchanged.
        """
        try:
            return self.execute(command)
        except ServerError as e:
            if self._credential is None:
                raise
            logger.info(f"{command.method()} failed ({e.message}); refreshing token and retrying")
        self.refresh_token()
        return self.execute(command)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> JqdataClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
