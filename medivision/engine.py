# medivision/engine.py
"""
Detection pipeline: schedule filter → medicine locator → report.

One run is one asyncio task. Submitting a new image cancels the run for the
previous one, so a stale report can never replace a newer one.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from medivision.locators import MedicineLocator
from medivision.schedule import due_medicines, time_of_day
from medivision.schema import DetectionReport, DetectionStatus
from medivision.store import RecordSource

logger = logging.getLogger(__name__)


def _current_hour() -> int:
    return datetime.now().hour


class DetectionCoordinator:
    def __init__(
        self,
        store: RecordSource,
        locator: MedicineLocator,
        clock: Callable[[], int] = _current_hour,
    ):
        self.store = store
        self.locator = locator
        self.clock = clock
        self._current: Optional[asyncio.Task] = None

    async def detect(self, image, hour: Optional[int] = None) -> DetectionReport:
        """
        Run one detection for an image.

        Provider problems never raise: they end up in report.failures or, when
        the whole lookup failed, in a FAILED report with a message.
        """
        hour = self.clock() if hour is None else hour
        current = time_of_day(hour)
        strategy = self.locator.strategy

        logger.info("=" * 60)
        logger.info("[STAGE 1] Filtering medicines due now (hour=%d, %s)", hour, current.value)
        records = self.store.get_all_records()
        logger.info("Retrieved %d saved prescription(s)", len(records))

        eligible = due_medicines(records, hour)

        if not eligible:
            logger.warning("No applicable medicines found for %s time", current.value)
            return DetectionReport(
                status=DetectionStatus.NO_ELIGIBLE_MEDICINES,
                hour=hour,
                time_of_day=current,
                strategy=strategy,
                message=f"No medicines found for {current.value} time in your saved prescriptions.",
            )

        names = [m.name for m in eligible]
        logger.info("[STAGE 2] Locating %s with %s strategy", ", ".join(names), strategy.value)
        located = await self.locator.locate(image, names)

        if located.fatal:
            return DetectionReport(
                status=DetectionStatus.FAILED,
                hour=hour,
                time_of_day=current,
                strategy=strategy,
                eligible_medicines=eligible,
                failures=[located.fatal],
                message=f"Failed to detect medicines: {located.fatal}",
            )

        message = None
        if located.failures:
            message = f"{len(located.failures)} lookup(s) failed; results may be incomplete."

        report = DetectionReport(
            status=DetectionStatus.COMPLETED,
            hour=hour,
            time_of_day=current,
            strategy=strategy,
            eligible_medicines=eligible,
            detections=located.detections,
            points=located.points,
            failures=located.failures,
            message=message,
        )

        logger.info("=== Detection Summary ===")
        logger.info("Total applicable medicines: %d", len(eligible))
        logger.info("Detected: %d", len(report.detected_names))
        return report

    def submit(self, image, hour: Optional[int] = None) -> asyncio.Task:
        """
        Start detection for a newly selected image, superseding any run still
        in flight. Must be called from a running event loop.
        """
        self.cancel()
        task = asyncio.get_running_loop().create_task(self.detect(image, hour))
        self._current = task
        return task

    def cancel(self) -> bool:
        task = self._current
        self._current = None
        if task is not None and not task.done():
            logger.info("[ENGINE] Cancelling superseded detection run")
            return task.cancel()
        return False
