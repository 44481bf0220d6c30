import asyncio
import io
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from PIL import Image, ImageOps

from photobooth.config import Settings
from photobooth.exceptions import InvalidImageError, PrintError
from photobooth.models.result import Failure, Result, Success
from photobooth.services.storage import split_data_uri

logger = logging.getLogger(__name__)

PRINT_DPI = 300
PDF_PAGE_INCHES = (4, 6)


class PrintService:
    """Sends finished photos to the kiosk printer or renders them to PDF."""

    def __init__(self, settings: Settings, runner=asyncio.create_subprocess_exec):
        self.settings = settings
        self.runner = runner

    def _prepare_print_file(self, source: Path, target: Path) -> None:
        with Image.open(source) as image:
            printable = ImageOps.exif_transpose(image).convert("RGB")
        printable.save(target, format="PNG", dpi=(PRINT_DPI, PRINT_DPI))

    def _lp_args(self, path: Path) -> list:
        return [
            "lp",
            "-d", self.settings.printer_name,
            "-o", "landscape",
            "-o", f"media={self.settings.print_media}",
            "-o", "fit-to-page",
            str(path),
        ]

    async def print_file(self, path: Union[str, Path]) -> Result:
        filepath = Path(path)
        if not filepath.is_file():
            return Failure(error=f"File not found: {filepath}")

        temp_path = filepath.parent / f"print-temp-{filepath.stem}.png"
        try:
            await asyncio.to_thread(self._prepare_print_file, filepath, temp_path)

            proc = await self.runner(
                *self._lp_args(temp_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await proc.communicate()
            if proc.returncode != 0:
                message = stderr.decode("utf-8", "ignore").strip()
                raise PrintError(message or f"lp exited with status {proc.returncode}")
        except (OSError, PrintError) as e:
            logger.error("Print failed for %s: %s", filepath, e)
            return Failure.from_exception(e)
        finally:
            self._schedule_cleanup(temp_path)

        logger.info("Sent %s to printer %s", filepath, self.settings.printer_name)
        return Success(file_path=str(filepath))

    def _schedule_cleanup(self, temp_path: Path) -> None:
        loop = asyncio.get_running_loop()
        loop.call_later(self.settings.print_cleanup_delay, self._remove_temp_file, temp_path)

    @staticmethod
    def _remove_temp_file(temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Failed to delete temp print file %s: %s", temp_path, e)

    def _render_pdf(self, payload: bytes, target: Path) -> None:
        page_size = (PDF_PAGE_INCHES[0] * PRINT_DPI, PDF_PAGE_INCHES[1] * PRINT_DPI)
        with Image.open(io.BytesIO(payload)) as image:
            image = image.convert("RGB")
        # Full page width, height follows the aspect ratio and is cropped at the page edge
        height = round(image.height * page_size[0] / image.width)
        image = image.resize((page_size[0], height), Image.Resampling.LANCZOS)

        page = Image.new("RGB", page_size, "white")
        page.paste(image, (0, 0))
        target.parent.mkdir(parents=True, exist_ok=True)
        page.save(target, format="PDF", resolution=PRINT_DPI)

    async def export_pdf(self, encoded_image: str) -> Result:
        timestamp = datetime.now(timezone.utc).isoformat().replace(":", "-").replace(".", "-")
        target = Path(self.settings.pdf_dir) / f"print-{timestamp}.pdf"
        try:
            _, payload = split_data_uri(encoded_image)
            await asyncio.to_thread(self._render_pdf, payload, target)
        except (InvalidImageError, OSError) as e:
            logger.error("PDF export failed: %s", e)
            return Failure.from_exception(e)

        logger.info("Pdf saved to %s", target)
        return Success(file_path=str(target))
