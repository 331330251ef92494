"""
Expiration Reconciler

Two sweeps that terminate sessions no client request would catch:

1. Budget exhaustion: running checkouts whose allocated time has run out are
   COMPLETED with their usage pinned to the allocation.
2. Window expiration: checkouts of timers past their expiration time (or
   force-expired) are CANCELLED.

Each checkout (or timer) is handled in its own transaction that re-reads the
rows it touches, so a sweep can overlap live requests and earlier sweeps
without double counting. A failing unit is logged and skipped.
"""

from core.availability import AvailabilityEvaluator
from core.checkouts import CheckoutStateMachine
from core.db import DatabaseManager
from core.logger import get_logger
from models.entities import AvailabilityReason, SweepResult

logger = get_logger(__name__)


class ExpirationReconciler:
    """Runs the exhaustion and window sweeps"""

    def __init__(
        self,
        db: DatabaseManager,
        evaluator: AvailabilityEvaluator,
        state_machine: CheckoutStateMachine,
    ):
        self.db = db
        self.evaluator = evaluator
        self.state_machine = state_machine

    def sweep_exhausted(self, result: SweepResult) -> SweepResult:
        """Complete running checkouts that used up their allocated seconds"""
        for checkout_id in self.db.checkouts.get_running_ids():
            try:
                if self.state_machine.complete_if_exhausted(checkout_id):
                    result.completed += 1
            except Exception as e:
                result.failed += 1
                logger.error(
                    f"Exhaustion sweep failed for checkout {checkout_id}: {e}",
                    exc_info=True,
                )
        return result

    def sweep_expired_windows(self, result: SweepResult) -> SweepResult:
        """Cancel open checkouts of timers whose window has closed for today"""
        for timer_id in self.db.checkouts.get_timer_ids_with_open_checkouts():
            try:
                availability = self.evaluator.evaluate(timer_id)
                if availability.reason != AvailabilityReason.AFTER_EXPIRATION:
                    continue
                result.force_stopped += self.state_machine.force_stop_timer(timer_id)
            except Exception as e:
                result.failed += 1
                logger.error(
                    f"Expiration sweep failed for timer {timer_id}: {e}", exc_info=True
                )
        return result

    def run_sweep(self) -> SweepResult:
        """Run both sweeps; exhaustion first so finished sessions complete normally"""
        result = SweepResult()
        self.sweep_exhausted(result)
        self.sweep_expired_windows(result)

        if result.completed or result.force_stopped or result.failed:
            logger.info(
                f"Expiration sweep: completed={result.completed} "
                f"force_stopped={result.force_stopped} failed={result.failed}"
            )
        return result
