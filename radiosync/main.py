"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from radiosync.config import get_settings
from radiosync.enrichment_client import EnrichmentClient
from radiosync.history import HistoryEngine
from radiosync.now_playing import NowPlayingEngine
from radiosync.player import HeadlessPlayer
from radiosync.schedule import ScheduleEngine
from radiosync.station_client import StationClient
from radiosync.store import open_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    settings = get_settings()
    store = await open_store(
        settings.db_abs_path,
        default_timezone=settings.default_timezone,
        default_stream_url=settings.primary_stream_url,
    )
    tz = ZoneInfo(await store.get_selected_timezone())

    station = StationClient(
        settings.station_api_base_url, timeout=settings.api_timeout_seconds
    )
    enrichment = EnrichmentClient(
        settings.enrichment_search_url,
        timeout=settings.api_timeout_seconds,
        concurrency=settings.enrichment_concurrency,
    )
    player = HeadlessPlayer(await store.get_last_stream_url())

    app.state.store = store
    app.state.player = player
    app.state.history = HistoryEngine(
        station, enrichment, store, tz=tz, page_size=settings.history_batch_size
    )
    app.state.schedule = ScheduleEngine(
        station, store, tz=tz, days_to_fetch=settings.schedule_days_to_fetch
    )
    now_playing = NowPlayingEngine(
        station,
        enrichment,
        store,
        player,
        tz=tz,
        poll_interval=settings.poll_interval_seconds,
        now_playing_limit=settings.now_playing_limit,
        next_count=settings.next_programmes_count,
    )
    await now_playing.restore()
    if await store.get_play_on_launch():
        player.play()
    now_playing.start_polling()
    app.state.now_playing = now_playing

    print(f"[startup] store ready at {settings.db_abs_path}")
    yield
    now_playing.cancel_sleep_timer()
    await now_playing.stop_polling()
    await store.close()
    print("[shutdown] store closed")


app = FastAPI(
    title="radiosync",
    version="0.1.0",
    lifespan=lifespan,
)

# Routers
from radiosync.routes_history import router as history_router  # noqa: E402
from radiosync.routes_player import router as player_router  # noqa: E402
from radiosync.routes_schedule import router as schedule_router  # noqa: E402

app.include_router(history_router)
app.include_router(schedule_router)
app.include_router(player_router)


@app.get("/health")
async def health():
    """Simple health-check endpoint."""
    return JSONResponse({"status": "ok", "version": app.version})


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
