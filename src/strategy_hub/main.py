"""CLI 入口模块 - AI Strategy Hub 命令行接口。"""

import os
import sys
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError

from strategy_hub import __version__
from strategy_hub.ai.provider import (
    GeminiGenerationService,
    GenerationService,
    TemplateGenerationService,
)
from strategy_hub.backtest.frames import library_frame
from strategy_hub.config import Settings, get_settings
from strategy_hub.errors import StrategyHubError
from strategy_hub.library.collection import StrategyCollection
from strategy_hub.library.models import (
    BACKTEST_TIMEFRAMES,
    MARKETS,
    RISK_TOLERANCES,
    SCRIPT_VERSIONS,
    TRADING_STYLES,
    BacktestInput,
    BacktestRecord,
    Preferences,
    SavedStrategy,
    Strategy,
    saved_strategies_adapter,
    strategy_like_adapter,
)
from strategy_hub.library.ranking import SortDirection, SortKey
from strategy_hub.library.repository import StrategyRepository
from strategy_hub.library.store import FileKeyValueStore
from strategy_hub.session import StrategyHubSession
from strategy_hub.utils.logging import get_logger, setup_logging
from strategy_hub.utils.tradingview import chart_url

_offline_option = click.option(
    "--offline",
    is_flag=True,
    default=False,
    help="使用离线模板生成器，不调用 Gemini",
)


def _build_service(settings: Settings, offline: bool) -> GenerationService:
    if offline:
        return TemplateGenerationService()
    return GeminiGenerationService(settings)


def _open_session(offline: bool = False) -> StrategyHubSession:
    """初始化日志、配置与会话。"""
    setup_logging()
    settings = get_settings()
    settings.ensure_directories()
    repository = StrategyRepository(FileKeyValueStore(settings.library_dir), settings.library_key)
    return StrategyHubSession(_build_service(settings, offline), repository)


def _fail(session: StrategyHubSession | None, exc: Exception) -> NoReturn:
    message = session.state.error if session is not None and session.state.error else str(exc)
    click.secho(f"[ERROR] {message}", fg="red", err=True)
    get_logger("strategy_hub.main").debug("command_failed", error=str(exc))
    sys.exit(1)


def _select_source(session: StrategyHubSession, source: str) -> Strategy | SavedStrategy:
    """将草稿文件或已保存策略 ID 设为当前策略。"""
    path = Path(source)
    if path.is_file():
        strategy = strategy_like_adapter.validate_json(path.read_text(encoding="utf-8"))
        session.state.current = strategy
        return strategy
    return session.load_strategy(source)


def _write_draft(strategy: Strategy | SavedStrategy, out: Path) -> None:
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(strategy.model_dump_json(by_alias=True, indent=2), encoding="utf-8")


def _echo_strategy(strategy: Strategy | SavedStrategy) -> None:
    click.echo(f"Name: {strategy.name}")
    if isinstance(strategy, SavedStrategy):
        click.echo(f"Id: {strategy.id}")
        click.echo(f"Saved at: {strategy.saved_at.isoformat()}")
        click.echo(f"Backtests: {len(strategy.backtest_history)}")
    click.echo(
        f"Style: {strategy.trading_style} | Market: {strategy.market} | "
        f"Risk: {strategy.risk_tolerance} | Pine Script {strategy.script_version}"
    )
    click.echo(f"Confidence: {strategy.confidence_score}")
    highlights = strategy.highlights
    click.echo(
        f"Highlights: net profit {highlights.net_profit}, win rate {highlights.win_rate}, "
        f"profit factor {highlights.profit_factor}, max drawdown {highlights.max_drawdown}, "
        f"trades {highlights.total_trades}"
    )
    click.echo()
    click.echo(strategy.description)
    click.echo()
    click.echo(f"Rationale: {strategy.generation_rationale}")
    for index, step in enumerate(strategy.logic_breakdown, start=1):
        click.echo(f"  {index}. [{step.kind}] {step.description}")


def _echo_backtest(record: BacktestRecord) -> None:
    metrics = record.metrics
    run = record.backtest_input
    click.echo(f"Backtest {run.asset} {run.timeframe}")
    click.echo(
        f"  net profit {metrics.net_profit} | win rate {metrics.win_rate} | "
        f"profit factor {metrics.profit_factor} | max drawdown {metrics.max_drawdown} | "
        f"trades {metrics.total_trades}"
    )
    click.echo(f"  strengths: {record.analysis.strengths}")
    click.echo(f"  weaknesses: {record.analysis.weaknesses}")
    click.echo(f"  suggestion: {record.analysis.suggestion}")
    click.echo(f"  chart: {chart_url(run)}")


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="显示版本号")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """AI Strategy Hub - AI 交易策略生成与策略库管理。

    生成策略 → 保存到策略库 → 反复回测 → 优化出新版本。
    """
    if version:
        click.echo(f"strategy-hub version {__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option("--style", "trading_style", type=click.Choice(TRADING_STYLES), default="DayTrading", show_default=True)
@click.option("--market", type=click.Choice(MARKETS), default="Crypto", show_default=True)
@click.option("--risk", "risk_tolerance", type=click.Choice(RISK_TOLERANCES), default="Medium", show_default=True)
@click.option("--capital", type=float, default=10_000.0, show_default=True, help="初始资金")
@click.option("--script-version", type=click.Choice(SCRIPT_VERSIONS), default="v5", show_default=True)
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("strategy_draft.json"),
    show_default=True,
    help="草稿输出路径",
)
@_offline_option
def generate(
    trading_style: str,
    market: str,
    risk_tolerance: str,
    capital: float,
    script_version: str,
    out: Path,
    offline: bool,
) -> None:
    """根据偏好生成新策略并写入草稿文件。"""
    session = _open_session(offline)
    try:
        preferences = Preferences(
            trading_style=trading_style,
            market=market,
            risk_tolerance=risk_tolerance,
            capital=capital,
            script_version=script_version,
        )
        strategy = session.submit_preferences(preferences)
    except (StrategyHubError, ValueError) as exc:
        _fail(session, exc)

    _write_draft(strategy, out)
    _echo_strategy(strategy)
    click.echo()
    click.echo(f"[OK] Draft written to {out}")


@cli.command()
@click.argument("source")
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("strategy_optimized.json"),
    show_default=True,
    help="优化结果草稿路径",
)
@_offline_option
def optimize(source: str, out: Path, offline: bool) -> None:
    """优化草稿文件或已保存策略（SOURCE 为文件路径或策略 ID），结果为新草稿。"""
    session = _open_session(offline)
    try:
        _select_source(session, source)
        optimized = session.optimize_current()
    except (StrategyHubError, ValueError) as exc:
        _fail(session, exc)

    _write_draft(optimized, out)
    _echo_strategy(optimized)
    click.echo()
    click.echo(f"[OK] Optimized draft written to {out}")


@cli.command()
@click.argument("draft", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", "-n", required=True, help="策略库中的显示名称")
def save(draft: Path, name: str) -> None:
    """将草稿保存到策略库。"""
    session = _open_session()
    try:
        source = _select_source(session, str(draft))
        saved = session.save_current(name)
    except (StrategyHubError, ValueError) as exc:
        _fail(session, exc)

    if not isinstance(source, SavedStrategy):
        click.echo(f"[OK] Saved '{saved.name}' as {saved.id}")
    elif saved.id in session.collection:
        click.echo(f"[INFO] Draft is already saved as {saved.id}; nothing written")
    else:
        click.secho(
            f"[WARN] Draft is already saved as {saved.id}, but that id is not in the library; nothing written",
            fg="yellow",
        )


@cli.command()
@click.argument("source")
@click.option("--asset", "-a", default=None, help="回测标的，默认取配置")
@click.option("--timeframe", "-t", type=click.Choice(BACKTEST_TIMEFRAMES), default=None, help="回测周期")
@click.option("--start", "start_date", default=None, help="开始日期 YYYY-MM-DD")
@click.option("--end", "end_date", default=None, help="结束日期 YYYY-MM-DD")
@_offline_option
def backtest(
    source: str,
    asset: str | None,
    timeframe: str | None,
    start_date: str | None,
    end_date: str | None,
    offline: bool,
) -> None:
    """回测策略；已保存策略的结果会追加到其回测历史。"""
    session = _open_session(offline)
    settings = get_settings()
    try:
        _select_source(session, source)
        backtest_input = BacktestInput(
            asset=asset or settings.default_asset,
            timeframe=timeframe or settings.default_timeframe,
            start_date=start_date,
            end_date=end_date,
        )
        record = session.run_backtest(backtest_input)
    except (StrategyHubError, ValueError) as exc:
        _fail(session, exc)

    _echo_backtest(record)
    current = session.current
    if isinstance(current, SavedStrategy) and session.is_current_saved():
        click.echo(f"[OK] Recorded in history of {current.id} ({len(current.backtest_history)} runs)")
    else:
        click.echo("[INFO] Strategy is not saved; result was not recorded")


@cli.group()
def library() -> None:
    """策略库管理。"""


@library.command("list")
@click.option(
    "--sort",
    "sort_key",
    type=click.Choice([key.value for key in SortKey]),
    default=SortKey.SAVED_AT.value,
    show_default=True,
)
@click.option(
    "--direction",
    type=click.Choice([direction.value for direction in SortDirection]),
    default=SortDirection.DESCENDING.value,
    show_default=True,
)
def list_strategies(sort_key: str, direction: str) -> None:
    """按指定指标排序列出已保存策略。"""
    session = _open_session()
    session.set_sort(sort_key, direction)
    view = session.library_view()
    if not view:
        click.echo("No saved strategies. Generate and save a strategy to see it here.")
        return
    click.echo(library_frame(view).to_string(index=False))


@library.command("show")
@click.argument("strategy_id")
@click.option("--code", "show_code", is_flag=True, default=False, help="同时输出 Pine Script")
def show(strategy_id: str, show_code: bool) -> None:
    """显示已保存策略及其回测历史。"""
    session = _open_session()
    try:
        strategy = session.load_strategy(strategy_id)
    except StrategyHubError as exc:
        _fail(session, exc)

    _echo_strategy(strategy)
    for record in strategy.backtest_history:
        click.echo()
        _echo_backtest(record)
    if show_code:
        click.echo()
        click.echo(strategy.code)


@library.command("delete")
@click.argument("strategy_id")
@click.confirmation_option(prompt="Delete this strategy and its backtest history?")
def delete(strategy_id: str) -> None:
    """删除已保存策略。"""
    session = _open_session()
    try:
        session.delete_strategy(strategy_id)
    except StrategyHubError as exc:
        _fail(session, exc)
    click.echo(f"[OK] Deleted {strategy_id}")


@cli.command()
def status() -> None:
    """显示配置摘要与策略库状态。"""
    session = _open_session()
    settings = get_settings()

    click.echo("=" * 50)
    click.echo("AI Strategy Hub - Status")
    click.echo("=" * 50)
    click.echo()

    click.echo("[Generation Service]")
    gemini_status = "[OK] Configured" if settings.is_online else "[--] Not configured (use --offline)"
    click.echo(f"   Gemini API: {gemini_status}")
    click.echo(f"   Model: {settings.gemini_model}")
    click.echo(f"   Timeout: {settings.gemini_timeout}s")
    click.echo()

    click.echo("[Library]")
    click.echo(f"   Directory: {settings.library_dir}")
    click.echo(f"   Slot: {settings.library_key}")
    click.echo(f"   Saved strategies: {len(session.collection)}")
    click.echo(f"   Recorded backtests: {sum(len(s.backtest_history) for s in session.collection)}")
    click.echo()

    click.echo("[Logging]")
    click.echo(f"   Log level: {settings.log_level}")
    click.echo(f"   Log format: {settings.log_format.value}")
    click.echo()

    missing = settings.validate_for_online()
    if missing:
        click.echo("[WARN] Online generation configuration incomplete, missing:")
        for key in missing:
            click.echo(f"   - {key}")
    else:
        click.echo("[OK] Online generation configuration complete")

    click.echo()
    click.echo("=" * 50)


@cli.command()
def check() -> None:
    """检查策略库存储与在线生成配置。"""
    setup_logging()
    logger = get_logger("strategy_hub.main")
    settings = get_settings()

    click.echo("Checking configuration...")
    click.echo()

    all_ok = True

    # 策略库目录必须可写
    library_dir = settings.library_dir
    try:
        settings.ensure_directories()
        writable = os.access(library_dir, os.W_OK)
    except OSError:
        writable = False
    if writable:
        click.echo(f"  [OK] Library directory is writable: {library_dir}")
    else:
        click.echo(f"  [ERROR] Library directory is not writable: {library_dir}")
        all_ok = False

    # 已有策略库必须能被完整读取
    if writable:
        key = settings.library_key
        try:
            blob = FileKeyValueStore(library_dir).get(key)
            if blob is None or not blob.strip():
                click.echo(f"  [OK] Library slot '{key}' is empty")
            else:
                collection = StrategyCollection(saved_strategies_adapter.validate_json(blob))
                click.echo(f"  [OK] Library slot '{key}' holds {len(collection)} strategies")
        except ValidationError as exc:
            click.echo(f"  [ERROR] Library slot '{key}' is malformed ({exc.error_count()} errors)")
            all_ok = False
        except StrategyHubError as exc:
            click.echo(f"  [ERROR] Library slot '{key}' is unreadable: {exc}")
            all_ok = False

    missing = settings.validate_for_online()
    if missing:
        click.echo(f"  [WARN] Gemini not configured, missing {', '.join(missing)} (use --offline)")
    else:
        click.echo(f"  [OK] Gemini configured, model {settings.gemini_model}")

    env_file = Path(".env")
    if env_file.exists():
        click.echo("  [OK] .env configuration file exists")
    else:
        click.echo("  [WARN] .env file not found (using defaults)")

    click.echo()
    logger.info("config_check_completed", all_ok=all_ok, online=not missing)

    if all_ok:
        click.echo("[OK] All configuration checks passed")
    else:
        click.secho("[ERROR] Some configuration checks failed", fg="red", err=True)
        sys.exit(1)


# 支持 python -m strategy_hub.main 调用
if __name__ == "__main__":
    cli()
