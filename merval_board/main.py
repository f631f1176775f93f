from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from merval_board.api.routes import router
from merval_board.config.instruments import MERVAL_INSTRUMENTS
from merval_board.config.settings import Settings, get_settings
from merval_board.integrations.yahoo_quotes import build_default_clients
from merval_board.services.batch_updater import BoardBatchUpdater
from merval_board.services.fallback_resolver import QuoteFallbackResolver
from merval_board.services.quote_board import QuoteBoard
from merval_board.services.scheduler import BoardRefreshScheduler


def build_services(app: FastAPI, settings: Settings) -> None:
    board = QuoteBoard(MERVAL_INSTRUMENTS)
    resolver = QuoteFallbackResolver(
        build_default_clients(
            primary_proxy=settings.QUOTE_PRIMARY_PROXY,
            fallback_proxy=settings.QUOTE_FALLBACK_PROXY,
            timeout_sec=settings.QUOTE_HTTP_TIMEOUT_SEC,
        )
    )
    updater = BoardBatchUpdater(
        resolver=resolver,
        board=board,
        delay_sec=settings.BOARD_REQUEST_DELAY_SEC,
    )
    app.state.quote_board = board
    app.state.quote_resolver = resolver
    app.state.batch_updater = updater
    app.state.board_scheduler = BoardRefreshScheduler(
        updater=updater,
        interval_sec=settings.BOARD_REFRESH_INTERVAL_SEC,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = app.state.board_scheduler
    if app.state.get_settings().BOARD_SCHEDULER_ENABLED:
        scheduler.start()
    try:
        yield
    finally:
        scheduler.stop()


app = FastAPI(title="MERVAL Quote Board", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

app.state.get_settings = get_settings
build_services(app, get_settings())
