"""Domain models for strategies, backtests and user preferences.

Every model serialises with the camelCase keys used by the generation
service and by previously stored libraries (``strategyName``,
``pineScript``, ``backtestHistory`` ...), while Python code works with
snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

TradingStyle = Literal["DayTrading", "SwingTrading", "Scalping", "PositionTrading", "HFT"]
Market = Literal["Crypto", "Stocks", "Forex", "Commodities"]
RiskTolerance = Literal["Low", "Medium", "High", "Aggressive"]
ScriptVersion = Literal["v5", "v6"]
LogicStepKind = Literal["condition", "action", "entry", "exit"]
TradeSide = Literal["buy", "sell"]

TRADING_STYLES: tuple[str, ...] = get_args(TradingStyle)
MARKETS: tuple[str, ...] = get_args(Market)
RISK_TOLERANCES: tuple[str, ...] = get_args(RiskTolerance)
SCRIPT_VERSIONS: tuple[str, ...] = get_args(ScriptVersion)
LOGIC_STEP_KINDS: tuple[str, ...] = get_args(LogicStepKind)
BACKTEST_TIMEFRAMES: tuple[str, ...] = (
    "1m",
    "3m",
    "5m",
    "15m",
    "30m",
    "45m",
    "1h",
    "2h",
    "3h",
    "4h",
    "1d",
    "1W",
    "1M",
)

MetricValue = float | str
ParameterValue = int | float | str


class WireModel(BaseModel):
    """Frozen model that accepts both field names and wire aliases."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict keyed by wire aliases."""
        return self.model_dump(mode="json", by_alias=True)


class Preferences(WireModel):
    """User-chosen configuration submitted to strategy generation."""

    trading_style: TradingStyle = Field(alias="tradingStyle")
    market: Market
    risk_tolerance: RiskTolerance = Field(alias="riskTolerance")
    capital: float = Field(gt=0)
    script_version: ScriptVersion = Field(alias="pineScriptVersion")


class BacktestMetrics(WireModel):
    """Headline performance figures. Values are kept exactly as produced."""

    net_profit: MetricValue | None = Field(default=None, alias="netProfit")
    total_trades: int | str | None = Field(default=None, alias="totalTrades")
    win_rate: MetricValue | None = Field(default=None, alias="winRate")
    profit_factor: MetricValue | None = Field(default=None, alias="profitFactor")
    max_drawdown: MetricValue | None = Field(default=None, alias="maxDrawdown")


class LogicStep(WireModel):
    kind: LogicStepKind = Field(alias="type")
    description: str


class BacktestInput(WireModel):
    """Parameters of one simulation run."""

    asset: str = Field(min_length=1)
    timeframe: str = Field(min_length=1)
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def has_date_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class BacktestAnalysis(WireModel):
    strengths: str
    weaknesses: str
    suggestion: str


class OHLCPoint(WireModel):
    time: str
    open: float
    high: float
    low: float
    close: float


class TradeMarker(WireModel):
    time: str
    side: TradeSide = Field(alias="type")
    price: float


class BacktestRecord(WireModel):
    """Result of one simulation run attached to a saved strategy."""

    backtest_input: BacktestInput = Field(alias="input")
    metrics: BacktestMetrics
    analysis: BacktestAnalysis
    chart_data: tuple[OHLCPoint, ...] = Field(default=(), alias="chartData")
    trades: tuple[TradeMarker, ...] = ()
    updated_code: str = Field(alias="updatedPineScript")


class StrategyBody(WireModel):
    """Fields shared by ephemeral and saved strategies."""

    name: str = Field(alias="strategyName")
    description: str
    generation_rationale: str = Field(alias="generationRationale")
    trading_style: TradingStyle = Field(alias="tradingStyle")
    market: Market
    risk_tolerance: RiskTolerance = Field(alias="riskTolerance")
    script_version: ScriptVersion = Field(alias="pineScriptVersion")
    parameters: dict[str, ParameterValue] = Field(default_factory=dict)
    code: str = Field(alias="pineScript")
    confidence_score: float = Field(alias="confidenceScore")
    highlights: BacktestMetrics = Field(alias="backtestHighlights")
    logic_breakdown: tuple[LogicStep, ...] = Field(default=(), alias="logicBreakdown")

    def body_fields(self) -> dict[str, Any]:
        """Return the shared strategy fields keyed by attribute name."""
        return {name: getattr(self, name) for name in StrategyBody.model_fields}

    def to_ephemeral(self) -> Strategy:
        """Project onto a fresh ephemeral strategy without identity or history."""
        return Strategy(**self.body_fields())


class Strategy(StrategyBody):
    """Generated or optimized strategy that has not been saved."""

    kind: Literal["ephemeral"] = "ephemeral"


class SavedStrategy(StrategyBody):
    """Strategy persisted in the user's library."""

    kind: Literal["durable"] = "durable"
    id: str = Field(min_length=1)
    saved_at: datetime = Field(alias="savedAt")
    backtest_history: tuple[BacktestRecord, ...] = Field(default=(), alias="backtestHistory")

    @field_validator("saved_at")
    @classmethod
    def _naive_as_utc(cls, v: datetime) -> datetime:
        # Naive timestamps are read as UTC.
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v


StrategyLike = Annotated[Strategy | SavedStrategy, Field(discriminator="kind")]

strategy_like_adapter: TypeAdapter[Strategy | SavedStrategy] = TypeAdapter(StrategyLike)
saved_strategies_adapter: TypeAdapter[list[SavedStrategy]] = TypeAdapter(list[SavedStrategy])
