"""Image cycle: download every image source, then the optional capture."""

import logging
import mimetypes
import time
from pathlib import PurePosixPath
from urllib.parse import urlparse

from wxfeed.capture import CaptureError, ScriptedCapture
from wxfeed.config.schema import FeedConfig, ImageConfig
from wxfeed.ingest.image_client import ImageClient, ImageDownload, ImageFetchError
from wxfeed.models.reporting import CycleKind, CycleOutcome
from wxfeed.output.xml_writer import OutputWriter
from wxfeed.reporting.cycle_recorder import CycleRecorder
from wxfeed.reporting.diagnostics import DiagnosticsReporter
from wxfeed.reporting.formatters import format_outcome_text
from wxfeed.transform.tags import sanitize_filename

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}
DEFAULT_SUFFIX = ".png"


def image_suffix(download: ImageDownload) -> str:
    suffix = PurePosixPath(urlparse(download.url).path).suffix.lower()
    if suffix in IMAGE_SUFFIXES:
        return suffix
    content_type = download.content_type.split(";", 1)[0].strip()
    guessed = mimetypes.guess_extension(content_type) if content_type else None
    return guessed if guessed in IMAGE_SUFFIXES else DEFAULT_SUFFIX


class ImageCycle:
    def __init__(
        self,
        config: FeedConfig,
        reporter: DiagnosticsReporter | None = None,
        image_client: ImageClient | None = None,
        writer: OutputWriter | None = None,
        capture: ScriptedCapture | None = None,
    ):
        self.config = config
        polling = config.polling
        self.client = image_client or ImageClient(
            user_agent=config.nws.user_agent,
            timeout=polling.request_timeout_seconds,
            max_attempts=polling.max_attempts,
            retry_step=polling.image_retry_step_seconds,
        )
        self.writer = writer or OutputWriter(config.output)
        self.reporter = reporter or DiagnosticsReporter.from_config(config.diagnostics)
        self.capture = capture or ScriptedCapture.from_config(config.capture)

    def run(self) -> CycleOutcome:
        start_time = time.monotonic()
        recorder = CycleRecorder(CycleKind.IMAGES, self.reporter)
        logger.info("Image cycle starting for %d images", len(self.config.images))

        for image in self.config.images:
            self._process_image(image, recorder)

        if self.config.capture.enabled:
            try:
                self.capture.run()
                recorder.record_success("capture")
            except CaptureError as e:
                recorder.record_error(f"Scripted capture failed: {e}", "capture")

        recorder.record_duration(time.monotonic() - start_time)
        outcome = recorder.finalize()
        logger.info("\n%s", format_outcome_text(outcome))
        return outcome

    def _process_image(self, image: ImageConfig, recorder: CycleRecorder) -> None:
        scope = f"image:{image.name}"
        try:
            download = self.client.fetch(image.url)
        except ImageFetchError as e:
            recorder.record_error(f"{image.name}: image fetch failed: {e}", scope)
            return

        path = f"{self.config.output.images_dir}/{sanitize_filename(image.name)}{image_suffix(download)}"
        try:
            self.writer.write_file(path, download.content)
        except OSError as e:
            recorder.record_error(f"{image.name}: could not write image: {e}", scope)
            return
        recorder.record_success(image.name)
