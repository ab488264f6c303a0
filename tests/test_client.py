from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import pytest
import requests

from jqdata.auth import API_URL
from jqdata.client import JqdataClient, _session_without_retries
from jqdata.errors import DecodeError, EncodeError, NoCredentialError, ServerError, TransportError
from jqdata.models import (
    GetAllSecurities,
    GetFundInfo,
    GetQueryCount,
    GetTradeDays,
    SecurityKind,
)


def _sent(call) -> dict:
    return json.loads(call.kwargs["data"])


class TestConstruction:
    def test_with_token(self, mock_session):
        client = JqdataClient.with_token("abc", session=mock_session)

        assert client.token == "abc"
        assert client.api_url == API_URL
        assert client.timeout == 30.0
        assert not client.has_credential
        mock_session.post.assert_not_called()

    def test_with_credential_exchanges_eagerly(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("abc")

        client = JqdataClient.with_credential("10000", "pass", session=mock_session)

        assert client.token == "abc"
        assert client.has_credential
        assert _sent(mock_session.post.call_args) == {
            "method": "get_current_token",
            "mob": "10000",
            "pwd": "pass",
        }

    def test_with_credential_without_reuse(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("fresh")

        client = JqdataClient.with_credential("10000", "pass", reuse=False, session=mock_session)

        assert client.token == "fresh"
        assert _sent(mock_session.post.call_args)["method"] == "get_token"

    def test_with_credential_fails_on_sentinel(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("error: invalid credential")

        with pytest.raises(ServerError, match="error: invalid credential"):
            JqdataClient.with_credential("10000", "wrong", session=mock_session)

    @patch("jqdata.client._session_without_retries")
    def test_failed_construction_closes_owned_session(self, mock_factory, response_factory):
        session = Mock(spec=requests.Session)
        session.post.return_value = response_factory("error: invalid credential")
        mock_factory.return_value = session

        with pytest.raises(ServerError):
            JqdataClient.with_credential("10000", "wrong")

        session.close.assert_called_once()

    def test_with_credential_transport_failure(self, mock_session):
        mock_session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(TransportError):
            JqdataClient.with_credential("10000", "pass", session=mock_session)

    @patch("jqdata.client.get_token")
    def test_from_env_with_credential(self, mock_get_token, clean_env, monkeypatch):
        monkeypatch.setenv("JQDATA_MOB", "10000")
        monkeypatch.setenv("JQDATA_PWD", "pass")
        monkeypatch.setenv("JQDATA_URL", "http://mock/apis")
        mock_get_token.return_value = "env_token"

        with patch("jqdata.auth.load_env_file_if_present"):
            client = JqdataClient.from_env()

        assert client.token == "env_token"
        assert client.api_url == "http://mock/apis"
        assert mock_get_token.call_args.kwargs["api_url"] == "http://mock/apis"

    def test_from_env_prefers_token(self, clean_env, monkeypatch):
        monkeypatch.setenv("JQDATA_TOKEN", "direct")

        with patch("jqdata.auth.load_env_file_if_present"):
            client = JqdataClient.from_env()

        assert client.token == "direct"
        assert not client.has_credential

    def test_from_env_without_anything(self, clean_env):
        with (
            patch("jqdata.auth.load_env_file_if_present"),
            pytest.raises(NoCredentialError),
        ):
            JqdataClient.from_env()


class TestExecute:
    def test_get_all_securities(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory(
            "code,display_name,name,start_date,end_date,type\n"
            "000001.XSHE,Ping An Bank,PAYH,1991-04-03,2200-01-01,stock\n"
        )
        client = JqdataClient.with_token("abc", session=mock_session)

        rows = client.execute(GetAllSecurities(code=SecurityKind.STOCK))

        assert len(rows) == 1
        assert rows[0].code == "000001.XSHE"
        assert rows[0].kind is SecurityKind.STOCK
        args, kwargs = mock_session.post.call_args
        assert args == (API_URL,)
        assert kwargs["headers"] == {"Content-Type": "application/json"}
        assert kwargs["timeout"] == 30.0
        assert _sent(mock_session.post.call_args) == {
            "code": "stock",
            "method": "get_all_securities",
            "token": "abc",
        }

    def test_rows_follow_body_order(self, mock_session, response_factory, securities_body):
        mock_session.post.return_value = response_factory(securities_body)
        client = JqdataClient.with_token("abc", session=mock_session)

        rows = client.execute(GetAllSecurities(code=SecurityKind.STOCK))

        assert [r.name for r in rows] == ["PAYH", "WKA"]

    def test_error_response(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("error: invalid token")
        client = JqdataClient.with_token("abc", session=mock_session)

        with pytest.raises(ServerError, match="invalid token"):
            client.execute(GetAllSecurities(code=SecurityKind.STOCK))

    def test_line_list(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("2024-01-02\n2024-01-03\n")
        client = JqdataClient.with_token("abc", session=mock_session)

        days = client.execute(GetTradeDays(date="2024-01-01", end_date="2024-01-03"))

        assert days == ["2024-01-02", "2024-01-03"]

    def test_line_list_returns_error_text_as_data(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("error: invalid token")
        client = JqdataClient.with_token("abc", session=mock_session)

        assert client.execute(GetTradeDays(date="2024-01-01")) == ["error: invalid token"]

    def test_scalar(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("42")
        client = JqdataClient.with_token("abc", session=mock_session)

        assert client.execute(GetQueryCount()) == 42

    def test_scalar_decode_error(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("lots")
        client = JqdataClient.with_token("abc", session=mock_session)

        with pytest.raises(DecodeError):
            client.execute(GetQueryCount())

    def test_json_object(self, mock_session, response_factory, fund_info_body):
        mock_session.post.return_value = response_factory(fund_info_body)
        client = JqdataClient.with_token("abc", session=mock_session)

        info = client.execute(GetFundInfo(code="000001.OF", date="2024-01-02"))

        assert info.fund_type == "混合型"

    def test_non_200_status_still_decoded(self, mock_session, response_factory, caplog):
        mock_session.post.return_value = response_factory("42", status_code=503)
        client = JqdataClient.with_token("abc", session=mock_session)

        assert client.execute(GetQueryCount()) == 42
        assert "HTTP 503" in caplog.text

    def test_transport_error_not_retried(self, mock_session):
        mock_session.post.side_effect = requests.ConnectionError("connection reset")
        client = JqdataClient.with_token("abc", session=mock_session)

        with pytest.raises(TransportError, match="get_query_count"):
            client.execute(GetQueryCount())

        assert mock_session.post.call_count == 1

    def test_non_command_raises_encode_error(self, mock_session):
        client = JqdataClient.with_token("abc", session=mock_session)

        with pytest.raises(EncodeError):
            client.execute({"method": "get_query_count"})

        mock_session.post.assert_not_called()

    def test_concurrent_execute_shares_snapshot(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("7")
        client = JqdataClient.with_token("abc", session=mock_session)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: client.execute(GetQueryCount()), range(16)))

        assert results == [7] * 16
        assert {_sent(c)["token"] for c in mock_session.post.call_args_list} == {"abc"}

    def test_concurrent_failures_are_independent(self, mock_session, response_factory):
        bodies = {"ok": response_factory("1"), "bad": response_factory("error: quota exceeded")}

        def answer(url, data, headers, timeout):
            return bodies["bad"] if json.loads(data)["date"] == "bad" else bodies["ok"]

        mock_session.post.side_effect = answer
        client = JqdataClient.with_token("abc", session=mock_session)

        def run(day):
            try:
                return client.execute(GetAllSecurities(code=SecurityKind.STOCK, date=day))
            except ServerError as e:
                return e

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(run, ["ok", "bad", "ok", "bad"]))

        assert isinstance(results[1], ServerError)
        assert isinstance(results[3], ServerError)
        assert results[0] == []
        assert results[2] == []


class TestRefresh:
    def test_refresh_replaces_token(self, mock_session, response_factory):
        mock_session.post.side_effect = [response_factory("t1"), response_factory("t2")]
        client = JqdataClient.with_credential("10000", "pass", session=mock_session)

        assert client.refresh_token() == "t2"
        assert client.token == "t2"
        assert client.snapshot().generation == 1

    def test_refresh_without_credential(self, mock_session):
        client = JqdataClient.with_token("abc", session=mock_session)

        with pytest.raises(NoCredentialError):
            client.refresh_token()

    def test_failed_refresh_keeps_old_token(self, mock_session, response_factory):
        mock_session.post.side_effect = [
            response_factory("t1"),
            response_factory("error: account locked"),
        ]
        client = JqdataClient.with_credential("10000", "pass", session=mock_session)

        with pytest.raises(ServerError):
            client.refresh_token()

        assert client.token == "t1"
        assert client.snapshot().generation == 0

    def test_execute_uses_refreshed_token(self, mock_session, response_factory):
        mock_session.post.side_effect = [
            response_factory("t1"),
            response_factory("t2"),
            response_factory("5"),
        ]
        client = JqdataClient.with_credential("10000", "pass", session=mock_session)
        client.refresh_token()

        client.execute(GetQueryCount())

        assert _sent(mock_session.post.call_args)["token"] == "t2"

    def test_execute_with_refresh_retries_once(self, mock_session, response_factory):
        mock_session.post.side_effect = [
            response_factory("t1"),
            response_factory("error: token expired"),
            response_factory("t2"),
            response_factory("9"),
        ]
        client = JqdataClient.with_credential("10000", "pass", session=mock_session)

        assert client.execute_with_refresh(GetQueryCount()) == 9
        assert mock_session.post.call_count == 4
        assert _sent(mock_session.post.call_args)["token"] == "t2"

    def test_execute_with_refresh_gives_up_after_one_retry(self, mock_session, response_factory):
        mock_session.post.side_effect = [
            response_factory("t1"),
            response_factory("error: token expired"),
            response_factory("t2"),
            response_factory("error: no permission"),
        ]
        client = JqdataClient.with_credential("10000", "pass", session=mock_session)

        with pytest.raises(ServerError, match="no permission"):
            client.execute_with_refresh(GetQueryCount())

    def test_execute_with_refresh_without_credential(self, mock_session, response_factory):
        mock_session.post.return_value = response_factory("error: token expired")
        client = JqdataClient.with_token("abc", session=mock_session)

        with pytest.raises(ServerError, match="token expired"):
            client.execute_with_refresh(GetQueryCount())

        assert mock_session.post.call_count == 1


class TestLifecycle:
    def test_context_manager_closes_session(self, mock_session):
        with JqdataClient.with_token("abc", session=mock_session) as client:
            assert client.token == "abc"

        mock_session.close.assert_called_once()


class TestSessionWithoutRetries:
    def test_adapters_mounted_with_zero_retries(self):
        session = _session_without_retries()

        assert isinstance(session, requests.Session)
        for prefix in ("http://", "https://"):
            assert session.adapters[prefix].max_retries.total == 0
