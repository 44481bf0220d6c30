import logging
from pathlib import Path
from typing import Union

from photobooth.db.records import RecordStore
from photobooth.exceptions import InvalidImageError, RecordStoreError
from photobooth.models.result import Failure, Result, Success
from photobooth.models.session import PhotoResultRecord
from photobooth.services.printer import PrintService
from photobooth.services.storage import PhotoStorage

logger = logging.getLogger(__name__)


class PhotoboothBridge:
    """Privileged operations exposed to the kiosk front-end.

    Every call returns a ``Success`` or ``Failure`` instead of raising, so
    callers always branch on ``result.success``.
    """

    def __init__(self, storage: PhotoStorage, records: RecordStore, printer: PrintService):
        self.storage = storage
        self.records = records
        self.printer = printer

    def save_photo_file(self, encoded_image: str, file_name: str) -> Result:
        try:
            filepath = self.storage.save(encoded_image, file_name)
        except (InvalidImageError, OSError) as e:
            logger.error("Failed to save photo file: %s", e)
            return Failure.from_exception(e)
        return Success(file_path=str(filepath))

    def save_photo_result(self, record: PhotoResultRecord) -> Result:
        try:
            self.records.save(record)
        except RecordStoreError as e:
            logger.error("Failed to save photo result: %s", e)
            return Failure.from_exception(e)
        return Success(data=record)

    def get_all_photo_results(self) -> Result:
        try:
            return Success(data=self.records.get_all())
        except RecordStoreError as e:
            logger.error("Failed to get photo results: %s", e)
            return Failure.from_exception(e)

    def get_photo_result_by_id(self, record_id: str) -> Result:
        try:
            return Success(data=self.records.get_by_id(record_id))
        except RecordStoreError as e:
            logger.error("Failed to get photo result %s: %s", record_id, e)
            return Failure.from_exception(e)

    async def print(self, path: Union[str, Path]) -> Result:
        return await self.printer.print_file(path)

    async def print_pdf(self, encoded_image: str) -> Result:
        return await self.printer.export_pdf(encoded_image)
