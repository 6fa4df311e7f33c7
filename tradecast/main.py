"""TradeCast application entry point.

Boots the FastAPI internal server that the dashboard calls for indicators,
signals and forecasts.
"""

import logging

from fastapi import FastAPI

from tradecast.api.routers import router

app = FastAPI(title="TradeCast Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("tradecast")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments, wire dependencies and serve the API."""
    import argparse

    import uvicorn

    from tradecast.api.routers import configure_routers
    from tradecast.config import load_config
    from tradecast.data.provider import CsvMarketDataProvider
    from tradecast.forecast.cache import ForecastCache
    from tradecast.pipeline import AnalysisPipeline

    parser = argparse.ArgumentParser(description="TradeCast analysis server")
    parser.add_argument("--port", type=int, help="API port (default: API_PORT)")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--env-file", help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env_file)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    cache = ForecastCache(
        max_entries=config.cache_max_entries,
        ttl_seconds=config.cache_ttl_seconds,
    )
    configure_routers(
        pipeline=AnalysisPipeline(cache),
        provider=CsvMarketDataProvider(config.data_dir),
        config=config,
    )

    port = args.port or config.api_port
    logger.info(
        "Starting TradeCast on %s:%d (default symbol %s, data dir %s)",
        args.host, port, config.default_symbol, config.data_dir,
    )
    uvicorn.run(app, host=args.host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    _run_cli()
