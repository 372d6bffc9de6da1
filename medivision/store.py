# medivision/store.py
import logging
import time
from pathlib import Path
from typing import List, Optional, Protocol
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from medivision.schema import Medicine, PrescriptionRecord

logger = logging.getLogger(__name__)

MAX_RECORDS = 50

_records_adapter = TypeAdapter(List[PrescriptionRecord])


class RecordSource(Protocol):
    def get_all_records(self) -> List[PrescriptionRecord]:
        ...


class PrescriptionStore:
    """
    Prescriptions persisted as a JSON list, most recent first.
    Only the newest MAX_RECORDS are kept.
    """

    def __init__(self, path: str, max_records: int = MAX_RECORDS):
        self.path = Path(path)
        self.max_records = max_records

    def _write(self, records: List[PrescriptionRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(_records_adapter.dump_json(records, indent=2))

    def save(
        self,
        file_name: str,
        extracted_text: str,
        medicines: List[Medicine],
        is_pdf: bool = False,
    ) -> PrescriptionRecord:
        record = PrescriptionRecord(
            id=str(uuid4()),
            file_name=file_name,
            extracted_text=extracted_text,
            medicines=list(medicines),
            timestamp_millis=int(time.time() * 1000),
            is_pdf=is_pdf,
        )

        records = [record] + self.get_all_records()
        self._write(records[:self.max_records])

        logger.info("[STORE] Saved '%s' with %d medicine(s)", file_name, len(record.medicines))
        return record

    def get_all_records(self) -> List[PrescriptionRecord]:
        if not self.path.exists():
            return []

        try:
            return _records_adapter.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning("[STORE] Could not read %s, treating as empty: %s", self.path, e)
            return []

    def get_most_recent(self) -> Optional[PrescriptionRecord]:
        records = self.get_all_records()
        return records[0] if records else None

    def delete(self, record_id: str) -> bool:
        records = self.get_all_records()
        remaining = [r for r in records if r.id != record_id]

        if len(remaining) == len(records):
            return False

        if remaining:
            self._write(remaining)
        else:
            self.clear()
        return True

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
