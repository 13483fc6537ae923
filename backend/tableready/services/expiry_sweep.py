"""Ready-entry expiry sweep.

Entries that were called (status ``ready``) but whose ``ready_deadline`` has
passed are moved to ``no_show`` on the patron's behalf. Runs as a periodic
background task.

Each entry is expired with its own UPDATE filtered on the current status and
deadline, so the sweep never overrides a staff action that landed first and
re-running it is a no-op. A failure on one entry is logged and the pass
continues.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tableready.core.timeutils import to_utc_naive
from tableready.models.waitlist import CancelledBy, WaitlistEntry, WaitlistStatus
from tableready.services.wait_time import WaitTimeService

logger = logging.getLogger(__name__)

SYSTEM_EXPIRY_REASON = "Automatic cancellation - patron did not arrive within time limit"
SWEEP_BATCH_SIZE = 200


class ExpirySweepService:
    """Moves overdue ready entries to no_show."""

    def __init__(self, db: Session):
        self.db = db
        self.estimator = WaitTimeService(db)

    def expire_ready_entries(self, now: datetime) -> Dict[str, Any]:
        """Expire every ready entry whose deadline is before *now*.

        Returns summary of actions taken.
        """
        now = to_utc_naive(now)
        results = {
            "expired": 0,
            "skipped": 0,
            "errors": [],
        }

        try:
            candidates = self.db.execute(
                select(WaitlistEntry.id).where(
                    WaitlistEntry.status == WaitlistStatus.READY,
                    WaitlistEntry.ready_deadline.isnot(None),
                    WaitlistEntry.ready_deadline < now,
                ).order_by(WaitlistEntry.ready_deadline).limit(SWEEP_BATCH_SIZE)
            ).scalars().all()

            if not candidates:
                logger.debug("No expired ready entries found")
                return results

            logger.info(f"Found {len(candidates)} ready entries past their deadline")

            for entry_id in candidates:
                try:
                    if self._expire_entry(entry_id, now):
                        results["expired"] += 1
                    else:
                        results["skipped"] += 1
                except SQLAlchemyError as e:
                    self.db.rollback()
                    results["errors"].append({
                        "entry_id": entry_id,
                        "error": str(e),
                    })
                    logger.warning(f"Failed to expire entry {entry_id}: {e}")

            logger.info(
                f"Expiry sweep: {results['expired']} expired, {results['skipped']} skipped, "
                f"{len(results['errors'])} errors"
            )

        except SQLAlchemyError as e:
            self.db.rollback()
            results["errors"].append({"error": f"Sweep failed: {str(e)}"})
            logger.error(f"Expiry sweep failed: {e}", exc_info=True)

        return results

    def _expire_entry(self, entry_id: str, now: datetime) -> bool:
        """Expire one entry if it is still ready and overdue at write time."""
        result = self.db.execute(
            update(WaitlistEntry).where(
                WaitlistEntry.id == entry_id,
                WaitlistEntry.status == WaitlistStatus.READY,
                WaitlistEntry.ready_deadline < now,
            ).values(
                status=WaitlistStatus.NO_SHOW,
                cancellation_reason=SYSTEM_EXPIRY_REASON,
                cancelled_by=CancelledBy.SYSTEM,
                updated_at=now,
                version=WaitlistEntry.next_version(),
            ).execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            logger.debug(f"Entry {entry_id} changed before expiry, skipping")
            return False

        self.estimator.record_no_show([entry_id])
        self.db.commit()
        logger.debug(f"Expired entry {entry_id} to no_show")
        return True


def run_expiry_sweep() -> Dict[str, Any]:
    """Standalone function to run the sweep (called from background scheduler)."""
    from tableready.core.timeutils import utc_now
    from tableready.db.session import SessionLocal

    db = SessionLocal()
    try:
        service = ExpirySweepService(db)
        return service.expire_ready_entries(utc_now())
    finally:
        db.close()
