"""Pydantic v2 configuration schema with strict validation."""

from pydantic import BaseModel, Field, model_validator


class LocationConfig(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1)
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class ImageConfig(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)


class GraphicTemplate(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1)
    template: str


class PollingConfig(BaseModel):
    model_config = {"extra": "forbid"}

    weather_interval_seconds: int = Field(default=60, ge=5)
    image_interval_seconds: int = Field(default=60, ge=5)
    max_attempts: int = Field(default=3, ge=1, le=10)
    weather_retry_step_seconds: float = Field(default=3.0, ge=0.0)
    image_retry_step_seconds: float = Field(default=2.0, ge=0.0)
    request_timeout_seconds: float = Field(default=30.0, gt=0.0)


class NwsConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = "https://api.weather.gov"
    user_agent: str = "wxfeed/0.1.0 (ops@example.com)"


class OutputConfig(BaseModel):
    model_config = {"extra": "forbid"}

    root_dir: str = "output"
    forecast_dir: str = "ForecastFiles"
    alerts_dir: str = "AlertFiles"
    images_dir: str = "Images"
    graphics_dir: str = "Graphics"
    icons_dir: str = "icons"
    icon_extension: str = ".png"


class DiagnosticsConfig(BaseModel):
    model_config = {"extra": "forbid"}

    enabled: bool = False
    logging_id: str = ""
    webhook_map_path: str = ""
    timeout_seconds: float = Field(default=10.0, gt=0.0)


class CaptureConfig(BaseModel):
    """Scripted webpage capture (burn ban map) run at the end of the image cycle."""

    model_config = {"extra": "forbid"}

    enabled: bool = False
    command: list[str] = []
    timeout_seconds: float = Field(default=120.0, gt=0.0)


class FeedConfig(BaseModel):
    model_config = {"extra": "forbid"}

    polling: PollingConfig = PollingConfig()
    nws: NwsConfig = NwsConfig()
    output: OutputConfig = OutputConfig()
    diagnostics: DiagnosticsConfig = DiagnosticsConfig()
    capture: CaptureConfig = CaptureConfig()
    locations: list[LocationConfig] = []
    images: list[ImageConfig] = []
    graphic_templates: list[GraphicTemplate] = []

    @model_validator(mode="after")
    def _names_unique(self) -> "FeedConfig":
        for label, items in (
            ("location", self.locations),
            ("image", self.images),
            ("graphic template", self.graphic_templates),
        ):
            seen: set[str] = set()
            for item in items:
                if item.name in seen:
                    raise ValueError(f"duplicate {label} name: {item.name}")
                seen.add(item.name)
        return self

    def location(self, name: str) -> LocationConfig | None:
        return next((loc for loc in self.locations if loc.name == name), None)

    def image(self, name: str) -> ImageConfig | None:
        return next((img for img in self.images if img.name == name), None)
