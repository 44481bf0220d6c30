import csv
import io
from datetime import datetime
from typing import Iterable, Optional

from photobooth.models.session import PhotoResultRecord

CSV_HEADERS = ["ID", "Name", "Email", "Phone", "Theme", "Photo Path", "Created At", "Updated At"]


def records_to_csv(records: Iterable[PhotoResultRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow([
            record.id,
            record.user_info.name,
            record.user_info.email,
            record.user_info.phone,
            record.selection.label if record.selection else "",
            record.photo_path,
            record.created_at,
            record.updated_at,
        ])
    # No trailing newline after the last row
    return buffer.getvalue().rstrip("\n")


def export_file_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"photobooth-data-{now.strftime('%Y-%m-%dT%H-%M-%S')}.csv"
