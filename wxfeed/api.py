"""Config API: FastAPI app for operators to manage locations, images and intervals."""

from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from wxfeed.config.loader import export_config, import_config
from wxfeed.config.store import IMAGES, WEATHER, ConfigError, ConfigStore
from wxfeed.daemon import PollDaemon


class LocationBody(BaseModel):
    name: str
    latitude: float
    longitude: float


class ImageBody(BaseModel):
    name: str
    url: str


class NameBody(BaseModel):
    name: str


class IntervalsBody(BaseModel):
    weather_interval_seconds: int | None = Field(default=None, ge=5)
    image_interval_seconds: int | None = Field(default=None, ge=5)


class CaptureBody(BaseModel):
    enabled: bool
    command: list[str] | None = None


def create_app(store: ConfigStore, daemon: PollDaemon | None = None) -> FastAPI:
    app = FastAPI(title="wxfeed config API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _apply(mutation, *args):
        try:
            config = mutation(*args)
        except ConfigError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return export_config(config)

    # ── Read endpoints ──────────────────────────────────────────────

    @app.get("/api/config")
    def get_config():
        return export_config(store.snapshot())

    @app.get("/api/config/export")
    def export():
        return export_config(store.snapshot())

    @app.get("/api/status")
    def get_status():
        banner = daemon.banner.to_dict() if daemon is not None else {"message": None}
        return {
            "running": daemon.running if daemon is not None else False,
            "banner": banner,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    # ── Locations and images ────────────────────────────────────────

    @app.post("/api/locations")
    def add_location(body: LocationBody):
        return _apply(store.add_location, body.name, body.latitude, body.longitude)

    @app.delete("/api/locations")
    def remove_location(body: NameBody):
        return _apply(store.remove_location, body.name)

    @app.post("/api/images")
    def add_image(body: ImageBody):
        return _apply(store.add_image, body.name, body.url)

    @app.delete("/api/images")
    def remove_image(body: NameBody):
        return _apply(store.remove_image, body.name)

    # ── Settings ────────────────────────────────────────────────────

    @app.post("/api/intervals")
    def set_intervals(body: IntervalsBody):
        return _apply(
            store.set_intervals, body.weather_interval_seconds, body.image_interval_seconds
        )

    @app.post("/api/capture")
    def set_capture(body: CaptureBody):
        return _apply(store.set_capture, body.enabled, body.command)

    @app.post("/api/config/import")
    def import_(body: dict):
        try:
            config = import_config(body)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return _apply(store.replace, config)

    @app.post("/api/refresh")
    def refresh():
        if daemon is None:
            raise HTTPException(status_code=503, detail="Daemon not running")
        daemon.request_run(WEATHER)
        daemon.request_run(IMAGES)
        return {"message": "Refresh requested"}

    return app
