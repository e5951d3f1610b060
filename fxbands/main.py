"""FXBands — application entry point.

Boots the FastAPI server and provides the CLI entry point for the
serve, analyze and backtest modes.
"""

import logging

from fastapi import FastAPI

from fxbands.api.routers import router

app = FastAPI(title="FXBands API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("fxbands")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio

    from fxbands.config import load_config
    from fxbands.data.provider import DatasetPriceProvider
    from fxbands.engine import AnalysisEngine

    parser = argparse.ArgumentParser(description="FXBands Bollinger analysis")
    parser.add_argument(
        "--mode",
        choices=["serve", "analyze", "backtest"],
        default="serve",
        help="Run mode (default: serve)",
    )
    parser.add_argument("--pair", help="Currency pair, e.g. EUR/USD")
    parser.add_argument("--days", type=int, help="Backtest span in days")
    parser.add_argument("--balance", type=float, help="Initial backtest balance")
    parser.add_argument("--port", type=int, help="API port (serve mode)")
    args = parser.parse_args(argv)

    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    engine = AnalysisEngine(DatasetPriceProvider(config.dataset_path))
    pair = args.pair or config.default_pair

    if args.mode == "analyze":
        asyncio.run(_run_analysis(engine, pair, config))
    elif args.mode == "backtest":
        asyncio.run(
            _run_backtest(
                engine,
                pair,
                config,
                days=args.days or config.backtest_days,
                balance=args.balance or config.initial_balance,
            )
        )
    else:
        asyncio.run(_serve(engine, config, args.port or config.api_port))


async def _serve(engine, config, port: int) -> None:
    """Start the API server with the live rate service running alongside."""
    import uvicorn

    from fxbands.api.routers import configure_routers
    from fxbands.data.live_rates import LiveRateService
    from fxbands.data.rates_client import ExchangeRateClient

    rates_client = ExchangeRateClient(config)
    live_rates = LiveRateService(
        rates_client,
        interval_seconds=config.rate_refresh_seconds,
        max_errors=config.rate_max_errors,
    )
    configure_routers(engine=engine, rates_client=rates_client, live_rates=live_rates)

    uvi_config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(uvi_config)

    live_rates.start()
    logger.info("API available at http://localhost:%d", port)
    try:
        await server.serve()
    finally:
        live_rates.stop()
        await live_rates.wait_stopped()
        logger.info("FXBands stopped.")


async def _run_analysis(engine, pair: str, config) -> None:
    """Analyse one pair from the bundled dataset and log the summary."""
    result = await engine.analyze(pair, config.bb_period, config.bb_std_dev)
    sig = result.current_signal
    logger.info(
        "%s — trend %s, volatility %s, position %s, recommendation %s",
        result.currency_pair,
        result.analysis.trend,
        result.analysis.volatility,
        result.analysis.position,
        result.analysis.recommendation,
    )
    logger.info("Current signal: %s", sig.reason)


async def _run_backtest(engine, pair: str, config, days: int, balance: float) -> None:
    """Backtest one pair from the bundled dataset and log the summary."""
    report = await engine.backtest(
        pair,
        days=days,
        initial_balance=balance,
        min_strength=config.min_strength,
        position_size_fraction=config.position_size_fraction,
        period=config.bb_period,
        num_std_dev=config.bb_std_dev,
    )
    logger.info(
        "Backtest complete: %d trades, final balance $%.2f, return %.2f%%, "
        "win rate %.1f%%, max drawdown %.2f%%",
        report.total_trades,
        report.final_balance,
        report.total_return_pct,
        report.win_rate_pct,
        report.max_drawdown_pct,
    )


if __name__ == "__main__":
    _run_cli()
