"""Render views and alert records as XML and write them under the output root."""

import logging
import os
import re
import xml.etree.ElementTree as ET
from pathlib import Path

from wxfeed.config.schema import OutputConfig
from wxfeed.models.alerts import AlertRecord
from wxfeed.models.forecast import ForecastView, ForecastViews
from wxfeed.transform.forecast import CURRENT_CONDITIONS_KEY
from wxfeed.transform.tags import sanitize, sanitize_filename

logger = logging.getLogger(__name__)

HOURLY = "HourlyForecast"
DAY_AND_NIGHT = "DayAndNightForecast"
DAILY = "DailyForecast"
CURRENT = "CurrentConditions"
RELATIVE = "Relative"


# Characters XML 1.0 cannot carry, even escaped.
_INVALID_XML_CHARS = re.compile(r"[^\t\n\r\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


def _text(value) -> str:
    return "" if value is None else _INVALID_XML_CHARS.sub("", str(value))


def build_view_document(root_tag: str, view: ForecastView) -> bytes:
    root = ET.Element(sanitize(root_tag))
    for label, record in view.items():
        entry = ET.SubElement(root, sanitize(label))
        for name, value in record.items():
            ET.SubElement(entry, sanitize(name)).text = _text(value)
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def build_alert_document(record: AlertRecord) -> bytes:
    root = ET.Element("Alert")
    for name, value in record.to_fields().items():
        ET.SubElement(root, name).text = _text(value)
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def build_simple_document(root_tag: str, fields: dict[str, object]) -> bytes:
    root = ET.Element(sanitize(root_tag))
    for name, value in fields.items():
        ET.SubElement(root, sanitize(name)).text = _text(value)
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def forecast_filename(location_name: str, doc_type: str, variant: str | None = None) -> str:
    stem = f"{sanitize_filename(location_name)}-{doc_type}"
    if variant:
        stem += f"-{variant}"
    return f"{stem}.xml"


def alert_filename(location_name: str, key: str) -> str:
    return f"{sanitize_filename(location_name)}-{key}-Alert.xml"


class OutputWriter:
    """Writes documents below ``output.root_dir``; every write is atomic."""

    def __init__(self, output: OutputConfig):
        self.output = output
        self.root = Path(output.root_dir)

    def forecast_documents(
        self, location_name: str, views: ForecastViews
    ) -> list[tuple[str, bytes]]:
        """(relative path, content) for each forecast document of a location.

        The hourly document carries both the absolute and relative keys.
        CurrentConditions is omitted when no observation was available.
        """
        folder = self.output.forecast_dir
        docs = [
            (
                forecast_filename(location_name, HOURLY),
                build_view_document(HOURLY, {**views.hourly_absolute, **views.hourly_relative}),
            ),
            (
                forecast_filename(location_name, DAY_AND_NIGHT),
                build_view_document(DAY_AND_NIGHT, views.day_night_absolute),
            ),
            (
                forecast_filename(location_name, DAY_AND_NIGHT, RELATIVE),
                build_view_document(DAY_AND_NIGHT, views.day_night_relative),
            ),
            (
                forecast_filename(location_name, DAILY),
                build_view_document(DAILY, views.daily_absolute),
            ),
            (
                forecast_filename(location_name, DAILY, RELATIVE),
                build_view_document(DAILY, views.daily_relative),
            ),
        ]
        if views.current is not None:
            docs.append(
                (
                    forecast_filename(location_name, CURRENT),
                    build_view_document(CURRENT, {CURRENT_CONDITIONS_KEY: views.current}),
                )
            )
        return [(f"{folder}/{name}", content) for name, content in docs]

    def alert_documents(
        self, location_name: str, records: list[AlertRecord]
    ) -> list[tuple[str, bytes]]:
        folder = self.output.alerts_dir
        return [
            (f"{folder}/{alert_filename(location_name, r.key.value)}", build_alert_document(r))
            for r in records
        ]

    def write_file(self, relative_path: str, content: bytes | str) -> Path:
        return self.write_all([(relative_path, content)])[0]

    def write_all(self, documents: list[tuple[str, bytes | str]]) -> list[Path]:
        """Write a set of documents so that either all of them land or none do.

        Every document is staged to a temp file beside its target before any
        target is replaced. If a replace still fails, targets already replaced
        are restored from their previous contents.
        """
        staged: list[tuple[Path, Path]] = []
        try:
            for relative_path, content in documents:
                path = self.root / relative_path
                path.parent.mkdir(parents=True, exist_ok=True)
                data = content.encode("utf-8") if isinstance(content, str) else content
                tmp = path.with_name(f".{path.name}.tmp")
                staged.append((tmp, path))
                tmp.write_bytes(data)
            for _, path in staged:
                if path.is_dir():
                    raise IsADirectoryError(f"Output path is a directory: {path}")
            self._replace_all(staged)
        finally:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
        for _, path in staged:
            logger.debug("Wrote %s", path)
        return [path for _, path in staged]

    def _replace_all(self, staged: list[tuple[Path, Path]]) -> None:
        previous = {path: path.read_bytes() if path.exists() else None for _, path in staged}
        replaced: list[Path] = []
        try:
            for tmp, path in staged:
                os.replace(tmp, path)
                replaced.append(path)
        except OSError:
            for path in replaced:
                old = previous[path]
                if old is None:
                    path.unlink(missing_ok=True)
                else:
                    path.write_bytes(old)
            raise
