"""JQData operation catalogue: request commands and their row types.

Each command is a frozen dataclass bound to its remote method name and
response format. Row types are pydantic models filled from CSV columns (or
JSON keys) of the same name; ``Field(alias=...)`` renames a column.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from jqdata.command import Command
from jqdata.formats import JsonObject, LineList, Scalar, Tabular


class SecurityKind(str, Enum):
    STOCK = "stock"
    FUND = "fund"
    INDEX = "index"
    FUTURES = "futures"
    ETF = "etf"
    LOF = "lof"
    FJA = "fja"
    FJB = "fjb"
    QDII_FUND = "QDII_fund"
    OPEN_FUND = "open_fund"
    BOND_FUND = "bond_fund"
    STOCK_FUND = "stock_fund"
    MONEY_MARKET_FUND = "money_market_fund"
    MIXTURE_FUND = "mixture_fund"
    OPTIONS = "options"


# --- row types ------------------------------------------------------------


class Row(BaseModel):
    """Base for response rows.

    A blank cell in an optional column reads as ``None``. Columns the model
    does not declare are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _blank_cells_to_none(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        optional = set()
        for name, info in cls.model_fields.items():
            if not info.is_required():
                optional.add(name)
                if info.alias:
                    optional.add(info.alias)
        return {k: None if v == "" and k in optional else v for k, v in data.items()}


class Security(Row):
    code: str
    display_name: str
    name: str
    start_date: str
    end_date: str
    kind: SecurityKind = Field(alias="type")
    parent: str | None = None


class LockedShare(Row):
    day: str
    code: str
    num: Decimal
    rate1: Decimal
    rate2: Decimal


class IndexWeight(Row):
    code: str
    display_name: str
    date: str
    weight: Decimal


class IndustryIndex(Row):
    index: str
    name: str
    start_date: str


class Industry(Row):
    industry: str
    industry_code: str
    industry_name: str


class Concept(Row):
    code: str
    name: str
    start_date: str


class Mtss(Row):
    """Margin trading and short selling balances for one day.

    Values are in yuan except the ``sec_*`` quantities, which are in shares.
    """

    date: str
    sec_code: str
    fin_value: Decimal
    fin_refund_value: Decimal
    sec_value: Decimal
    sec_sell_value: Decimal
    sec_refund_value: Decimal
    fin_sec_value: Decimal
    fin_buy_value: Decimal | None = None


class MoneyFlow(Row):
    """Daily money flow split by order size (amounts in 10k yuan, ratios in %)."""

    date: str
    sec_code: str
    change_pct: Decimal
    net_amount_main: Decimal
    net_pct_main: Decimal
    net_amount_xl: Decimal
    net_pct_xl: Decimal
    net_amount_l: Decimal
    net_pct_l: Decimal
    net_amount_m: Decimal
    net_pct_m: Decimal
    net_amount_s: Decimal
    net_pct_s: Decimal


class BillboardStock(Row):
    """One entry of the daily top-traders list.

    ``rank`` 0 is the summary line, 1-5 are the top buyers and 6-10 the top
    sellers.
    """

    code: str
    day: str
    direction: str
    rank: int
    abnormal_code: str
    abnormal_name: str
    sales_depart_name: str
    buy_value: Decimal
    buy_rate: Decimal
    sell_value: Decimal
    sell_rate: Decimal
    total_value: Decimal
    net_value: Decimal
    amount: Decimal


class FundInfo(Row):
    fund_name: str
    fund_type: str
    fund_establishment_day: str
    fund_manager: str
    fund_management_fee: str
    fund_custodian_fee: str
    fund_status: str
    fund_size: str
    fund_share: Decimal
    fund_asset_allocation_proportion: str
    heavy_hold_stocks: list[str]
    heavy_hold_stocks_proportion: Decimal
    heavy_hold_bond: list[str]
    heavy_hold_bond_proportion: Decimal


class Tick(Row):
    """Tick snapshot with five levels of asks (``a*``) and bids (``b*``)."""

    time: Decimal
    current: Decimal
    high: Decimal
    low: Decimal
    volume: Decimal
    money: Decimal
    position: Decimal | None = None
    a1_v: Decimal | None = None
    a2_v: Decimal | None = None
    a3_v: Decimal | None = None
    a4_v: Decimal | None = None
    a5_v: Decimal | None = None
    a1_p: Decimal | None = None
    a2_p: Decimal | None = None
    a3_p: Decimal | None = None
    a4_p: Decimal | None = None
    a5_p: Decimal | None = None
    b1_v: Decimal | None = None
    b2_v: Decimal | None = None
    b3_v: Decimal | None = None
    b4_v: Decimal | None = None
    b5_v: Decimal | None = None
    b1_p: Decimal | None = None
    b2_p: Decimal | None = None
    b3_p: Decimal | None = None
    b4_p: Decimal | None = None
    b5_p: Decimal | None = None


class Extra(Row):
    date: str
    is_st: int | None = None
    acc_net_value: float | None = None
    unit_net_value: float | None = None
    futures_sett_price: float | None = None
    futures_positions: float | None = None
    adj_net_value: float | None = None


class Price(Row):
    """OHLCV bar. Daily bars also carry the limit and pause columns."""

    date: str
    open: Decimal
    close: Decimal
    high: Decimal
    low: Decimal
    volume: Decimal
    money: Decimal
    paused: int | None = None
    high_limit: float | None = None
    low_limit: float | None = None
    avg: float | None = None
    pre_close: float | None = None
    open_interest: float | None = None


class FactorValue(Row):
    date: str
    cfo_to_ev: float | None = None
    net_profit_ratio: float | None = None


# --- commands -------------------------------------------------------------


@dataclass(frozen=True)
class GetAllSecurities(Command, method="get_all_securities", response=Tabular(Security)):
    """All stocks, funds, indexes or futures of one kind listed on ``date``."""

    code: SecurityKind
    date: str | None = None


@dataclass(frozen=True)
class GetSecurityInfo(Command, method="get_security_info", response=Tabular(Security)):
    code: str


@dataclass(frozen=True)
class GetIndexStocks(Command, method="get_index_stocks", response=LineList()):
    """Constituents of an index on a given date."""

    code: str
    date: str


@dataclass(frozen=True)
class GetMargincashStocks(Command, method="get_margincash_stocks", response=LineList()):
    """Securities eligible for margin financing; defaults to the previous trading day."""

    date: str | None = None


@dataclass(frozen=True)
class GetLockedShares(Command, method="get_locked_shares", response=Tabular(LockedShare)):
    code: str
    date: str
    end_date: str


@dataclass(frozen=True)
class GetIndexWeights(Command, method="get_index_weights", response=Tabular(IndexWeight)):
    """Constituent weights of an index (``000001.XSHG`` style code); updated monthly."""

    code: str
    date: str


@dataclass(frozen=True)
class GetIndustries(Command, method="get_industries", response=Tabular(IndustryIndex)):
    """Industries of one classification: sw_l1, sw_l2, sw_l3, jq_l1, jq_l2 or zjw."""

    code: str


@dataclass(frozen=True)
class GetIndustry(Command, method="get_industry", response=Tabular(Industry)):
    code: str
    date: str


@dataclass(frozen=True)
class GetIndustryStocks(Command, method="get_industry_stocks", response=LineList()):
    code: str
    date: str


@dataclass(frozen=True)
class GetConcepts(Command, method="get_concepts", response=Tabular(Concept)):
    pass


@dataclass(frozen=True)
class GetConceptStocks(Command, method="get_concept_stocks", response=LineList()):
    code: str
    date: str


@dataclass(frozen=True)
class GetTradeDays(Command, method="get_trade_days", response=LineList()):
    date: str
    end_date: str | None = None


@dataclass(frozen=True)
class GetAllTradeDays(Command, method="get_all_trade_days", response=LineList()):
    pass


@dataclass(frozen=True)
class GetMtss(Command, method="get_mtss", response=Tabular(Mtss)):
    code: str
    date: str
    end_date: str


@dataclass(frozen=True)
class GetMoneyFlow(Command, method="get_money_flow", response=Tabular(MoneyFlow)):
    """Money flow of a stock over a date range. Stocks only."""

    code: str
    date: str
    end_date: str


@dataclass(frozen=True)
class GetBillboardList(Command, method="get_billboard_list", response=Tabular(BillboardStock)):
    code: str
    date: str
    end_date: str


@dataclass(frozen=True)
class GetFutureContracts(Command, method="get_future_contracts", response=LineList()):
    """Tradable contracts of a futures product, e.g. ``AG``."""

    code: str
    date: str


@dataclass(frozen=True)
class GetDominantFuture(Command, method="get_dominant_future", response=LineList()):
    code: str
    date: str


@dataclass(frozen=True)
class GetFundInfo(Command, method="get_fund_info", response=JsonObject(FundInfo)):
    code: str
    date: str


@dataclass(frozen=True)
class GetCurrentTick(Command, method="get_current_tick", response=Tabular(Tick)):
    code: str


@dataclass(frozen=True)
class GetCurrentTicks(Command, method="get_current_ticks", response=Tabular(Tick)):
    """Latest ticks for several codes joined with ``,``; all must be the same kind."""

    code: str


@dataclass(frozen=True)
class GetExtras(Command, method="get_extras", response=Tabular(Extra)):
    """Fund net values, futures settlement prices and ST flags over a date range."""

    code: str
    date: str
    end_date: str


@dataclass(frozen=True)
class GetPrice(Command, method="get_price", response=Tabular(Price)):
    """The last ``count`` bars (at most 5000) of ``unit`` up to ``end_date``.

    ``unit`` is one of 1m, 5m, 15m, 30m, 60m, 120m, 1d, 1w, 1M. Leaving
    ``fq_ref_date`` unset returns unadjusted prices.
    """

    code: str
    count: int
    unit: str
    end_date: str | None = None
    fq_ref_date: str | None = None


@dataclass(frozen=True)
class GetPricePeriod(Command, method="get_price_period", response=Tabular(Price)):
    code: str
    unit: str
    date: str
    end_date: str
    fq_ref_date: str | None = None


@dataclass(frozen=True)
class GetTicks(Command, method="get_ticks", response=Tabular(Tick)):
    """Ticks up to ``end_date``. ``skip`` drops ticks without a trade."""

    code: str
    end_date: str
    skip: bool = True
    count: int | None = None


@dataclass(frozen=True)
class GetTicksPeriod(Command, method="get_ticks_period", response=Tabular(Tick)):
    code: str
    date: str
    end_date: str
    skip: bool = True


@dataclass(frozen=True)
class GetFactorValues(Command, method="get_factor_values", response=Tabular(FactorValue)):
    """Factor values for one stock; ``columns`` is a comma-separated factor list."""

    code: str
    columns: str
    date: str
    end_date: str


@dataclass(frozen=True)
class RunQuery(Command, method="run_query", response=LineList()):
    """Query a finance table, e.g. ``finance.STK_XR_XD``.

    ``conditions`` uses the ``column#op#value`` syntax joined with ``&``.
    ``count`` defaults to 1 on the server and is capped at 1000.
    """

    table: str
    columns: str
    conditions: str | None = None
    count: int | None = None


@dataclass(frozen=True)
class GetQueryCount(Command, method="get_query_count", response=Scalar(int)):
    """Remaining number of rows the account may query today."""

    pass
