"""Config store: the single owner of live configuration.

Cycles never read the live config directly. They take a ``snapshot()`` at
start and keep it for the whole cycle; mutations made meanwhile land in the
store and are picked up by the next cycle.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from wxfeed.config.loader import load_config, save_config, set_config_value
from wxfeed.config.schema import FeedConfig, ImageConfig, LocationConfig

logger = logging.getLogger(__name__)

WEATHER = "weather"
IMAGES = "images"

Listener = Callable[[str], None]


class ConfigError(Exception):
    """Raised for invalid config mutations (duplicate or unknown names)."""


class ConfigStore:
    def __init__(self, config: FeedConfig | None = None, path: str | Path | None = None):
        self._config = config if config is not None else FeedConfig()
        self.path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    @classmethod
    def load(cls, path: str | Path) -> "ConfigStore":
        return cls(load_config(path), path)

    def snapshot(self) -> FeedConfig:
        with self._lock:
            return self._config.model_copy(deep=True)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # --- Locations ---

    def add_location(self, name: str, latitude: float, longitude: float) -> FeedConfig:
        def mutate(config: FeedConfig) -> FeedConfig:
            if config.location(name) is not None:
                raise ConfigError(f"Location already exists: {name}")
            loc = LocationConfig(name=name, latitude=latitude, longitude=longitude)
            return config.model_copy(update={"locations": [*config.locations, loc]})

        return self._update(mutate, WEATHER)

    def remove_location(self, name: str) -> FeedConfig:
        def mutate(config: FeedConfig) -> FeedConfig:
            if config.location(name) is None:
                raise ConfigError(f"Unknown location: {name}")
            kept = [loc for loc in config.locations if loc.name != name]
            return config.model_copy(update={"locations": kept})

        return self._update(mutate, WEATHER)

    # --- Images ---

    def add_image(self, name: str, url: str) -> FeedConfig:
        def mutate(config: FeedConfig) -> FeedConfig:
            if config.image(name) is not None:
                raise ConfigError(f"Image already exists: {name}")
            img = ImageConfig(name=name, url=url)
            return config.model_copy(update={"images": [*config.images, img]})

        return self._update(mutate, IMAGES)

    def remove_image(self, name: str) -> FeedConfig:
        def mutate(config: FeedConfig) -> FeedConfig:
            if config.image(name) is None:
                raise ConfigError(f"Unknown image: {name}")
            kept = [img for img in config.images if img.name != name]
            return config.model_copy(update={"images": kept})

        return self._update(mutate, IMAGES)

    # --- Settings ---

    def set_intervals(
        self,
        weather_seconds: int | None = None,
        image_seconds: int | None = None,
    ) -> FeedConfig:
        update: dict[str, int] = {}
        topics = []
        if weather_seconds is not None:
            update["weather_interval_seconds"] = weather_seconds
            topics.append(WEATHER)
        if image_seconds is not None:
            update["image_interval_seconds"] = image_seconds
            topics.append(IMAGES)

        def mutate(config: FeedConfig) -> FeedConfig:
            return config.model_copy(update={"polling": config.polling.model_copy(update=update)})

        return self._update(mutate, *topics)

    def set_capture(self, enabled: bool, command: list[str] | None = None) -> FeedConfig:
        def mutate(config: FeedConfig) -> FeedConfig:
            update: dict[str, Any] = {"enabled": enabled}
            if command is not None:
                update["command"] = list(command)
            capture = config.capture.model_copy(update=update)
            return config.model_copy(update={"capture": capture})

        return self._update(mutate, IMAGES)

    def set_value(self, dotted_key: str, value: Any) -> FeedConfig:
        return self._update(
            lambda config: set_config_value(config, dotted_key, value), WEATHER, IMAGES
        )

    def replace(self, config: FeedConfig) -> FeedConfig:
        return self._update(lambda _: config, WEATHER, IMAGES)

    def _update(self, mutate: Callable[[FeedConfig], FeedConfig], *topics: str) -> FeedConfig:
        with self._lock:
            # Round-trip through validation so model_copy updates are checked too.
            new_config = FeedConfig(**mutate(self._config).model_dump())
            if self.path is not None:
                save_config(new_config, self.path)
            self._config = new_config
            snapshot = new_config.model_copy(deep=True)

        for topic in topics:
            for listener in self._listeners:
                listener(topic)
        logger.info("Config updated (%s)", ", ".join(topics) or "no reschedule")
        return snapshot
