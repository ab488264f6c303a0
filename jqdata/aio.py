"""Asynchronous JQData client built on httpx.

Same contract as ``jqdata.client.JqdataClient``; every network call is an
``await`` point. Cancelling a refresh before the exchange returns leaves the
previous token in place.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from jqdata.auth import (
    API_URL,
    DEFAULT_TIMEOUT,
    JSON_HEADERS,
    Credential,
    TokenCache,
    TokenSnapshot,
    build_token_request,
    load_api_url,
    load_credential,
    load_token,
    parse_token_response,
    token_method,
)
from jqdata.client import decode_response
from jqdata.command import Command
from jqdata.envelope import encode_command
from jqdata.errors import NoCredentialError, ServerError, TransportError

logger = logging.getLogger(__name__)


def build_async_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout), headers=JSON_HEADERS)


async def get_token_async(
    credential: Credential,
    reuse: bool = True,
    http: httpx.AsyncClient | None = None,
    api_url: str = API_URL,
) -> str:
    """Async counterpart of ``jqdata.auth.get_token``."""
    payload = json.dumps(build_token_request(credential, reuse))
    owned = http is None
    client = http or build_async_client()
    try:
        res = await client.post(api_url, content=payload, headers=JSON_HEADERS)
        body = res.content
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise TransportError(f"Token exchange failed: {e}") from e
    finally:
        if owned:
            await client.aclose()
    token = parse_token_response(body)
    logger.info(f"Obtained token via {token_method(reuse)} (len={len(token)})")
    return token


class AsyncJqdataClient:
    """Non-blocking JQData client.

    Examples:
        >>> client = await AsyncJqdataClient.with_credential("13800000000", "secret")
        >>> days = await client.execute(GetTradeDays(date="2024-01-02"))
    """

    def __init__(
        self,
        token: str,
        credential: Credential | None = None,
        api_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        reuse: bool = True,
        http: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.reuse = reuse
        self.http = http or build_async_client(timeout)
        self._credential = credential
        self._tokens = TokenCache(token)

    @classmethod
    async def with_credential(
        cls,
        mob: str,
        pwd: str,
        *,
        reuse: bool = True,
        api_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.AsyncClient | None = None,
    ) -> AsyncJqdataClient:
        credential = Credential(mob=mob, pwd=pwd)
        owned = http is None
        client = http or build_async_client(timeout)
        try:
            token = await get_token_async(credential, reuse, http=client, api_url=api_url)
        except BaseException:
            if owned:
                await client.aclose()
            raise
        return cls(
            token,
            credential=credential,
            api_url=api_url,
            timeout=timeout,
            reuse=reuse,
            http=client,
        )

    @classmethod
    def with_token(
        cls,
        token: str,
        *,
        api_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.AsyncClient | None = None,
    ) -> AsyncJqdataClient:
        return cls(token, api_url=api_url, timeout=timeout, http=http)

    @classmethod
    async def from_env(cls) -> AsyncJqdataClient:
        api_url = load_api_url()
        token = load_token(dotenv=False)
        if token:
            return cls.with_token(token, api_url=api_url)
        credential = load_credential(dotenv=False)
        return await cls.with_credential(credential.mob, credential.pwd, api_url=api_url)

    @property
    def token(self) -> str:
        return self._tokens.token

    @property
    def has_credential(self) -> bool:
        return self._credential is not None

    def snapshot(self) -> TokenSnapshot:
        return self._tokens.snapshot()

    async def refresh_token(self) -> str:
        if self._credential is None:
            raise NoCredentialError("credential not available to refresh token")
        token = await get_token_async(
            self._credential, self.reuse, http=self.http, api_url=self.api_url
        )
        self._tokens.replace(token)
        return token

    async def execute(self, command: Command) -> Any:
        snapshot = self._tokens.snapshot()
        body = encode_command(command, snapshot.value)
        method = command.method()
        logger.debug(f"POST {method} ({len(body)} bytes, token generation {snapshot.generation})")
        try:
            res = await self.http.post(self.api_url, content=body, headers=JSON_HEADERS)
            content = res.content
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"{method} request failed: {e}") from e
        return decode_response(command, res.status_code, content)

    async def execute_with_refresh(self, command: Command) -> Any:
        try:
            return await self.execute(command)
        except ServerError as e:
            if self._credential is None:
                raise
            logger.info(f"{command.method()} failed ({e.message}); refreshing token and retrying")
        await self.refresh_token()
        return await self.execute(command)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> AsyncJqdataClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
