# medivision/schedule.py
import logging
from typing import Iterable, List

from medivision.schema import Medicine, PrescriptionRecord, WhenToTake

logger = logging.getLogger(__name__)

# Hours 0-16 count as morning; there is no afternoon bucket.
EVENING_START_HOUR = 17


def time_of_day(hour: int) -> WhenToTake:
    if not 0 <= hour <= 23:
        raise ValueError(f"hour must be in [0, 23], got {hour}")
    return WhenToTake.MORNING if hour < EVENING_START_HOUR else WhenToTake.EVENING


def should_take(medicine: Medicine, current: WhenToTake) -> bool:
    return medicine.when_to_take == WhenToTake.BOTH or medicine.when_to_take == current


def due_medicines(records: Iterable[PrescriptionRecord], hour: int) -> List[Medicine]:
    """
    Collect every medicine due at the given hour.

    Keeps record order, then per-record medicine order. The same medicine
    listed in two prescriptions is returned twice.
    """
    current = time_of_day(hour)
    due = []

    for record in records:
        for medicine in record.medicines:
            if should_take(medicine, current):
                due.append(medicine)

    logger.info("[SCHEDULE] %d medicine(s) due for %s (hour=%d)", len(due), current.value, hour)
    return due
