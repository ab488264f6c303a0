from __future__ import annotations

import os
from unittest.mock import Mock

import pytest
import requests


@pytest.fixture
def clean_env(monkeypatch):
    """Remove JQData variables so tests never see a developer's credential."""
    for key in ["JQDATA_MOB", "JQDATA_PWD", "JQDATA_TOKEN", "JQDATA_URL"]:
        monkeypatch.delenv(key, raising=False)
    yield


def make_response(body: bytes | str, status_code: int = 200) -> Mock:
    if isinstance(body, str):
        body = body.encode("utf-8")
    res = Mock()
    res.status_code = status_code
    res.content = body
    return res


@pytest.fixture
def mock_session():
    """A requests session whose ``post`` answers with a successful empty body."""
    session = Mock(spec=requests.Session)
    session.post.return_value = make_response(b"")
    return session


@pytest.fixture
def securities_body():
    """Two rows in the CSV shape returned by ``get_all_securities``."""
    return (
        "code,display_name,name,start_date,end_date,type\n"
        "000001.XSHE,平安银行,PAYH,1991-04-03,2200-01-01,stock\n"
        "000002.XSHE,万科A,WKA,1991-01-29,2200-01-01,stock\n"
    )


@pytest.fixture
def fund_info_body():
    return (
        '{"fund_name": "华夏成长证券投资基金", "fund_type": "混合型",'
        ' "fund_establishment_day": "2001-12-18", "fund_manager": "华夏基金管理有限公司",'
        ' "fund_management_fee": "1.5%", "fund_custodian_fee": "0.25%",'
        ' "fund_status": "开放申购", "fund_size": "3.5亿", "fund_share": 3.05,'
        ' "fund_asset_allocation_proportion": "股票 70%",'
        ' "heavy_hold_stocks": ["600519.XSHG", "000858.XSHE"],'
        ' "heavy_hold_stocks_proportion": 18.2,'
        ' "heavy_hold_bond": ["019547.XSHG"], "heavy_hold_bond_proportion": 2.1}'
    )


@pytest.fixture
def env_snapshot():
    """Restore os.environ after tests that load .env files."""
    original = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original)


@pytest.fixture
def response_factory():
    """Build a mocked ``requests.Response`` with a status and raw body."""
    return make_response
