"""
Scheduler pour les tâches automatiques du CRM
- Expiration des communication logs restés PENDING sans receipt

Désactivé par défaut (PENDING_TIMEOUT_SECONDS = 0).
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import PENDING_TIMEOUT_SECONDS, PENDING_SWEEP_INTERVAL_SECONDS
from services.receipt_handler import expire_stale_pending

logger = logging.getLogger("scheduler")


class ReceiptSweepScheduler:
    """Gestionnaire de la tâche de balayage des receipts manquants"""

    def __init__(
        self,
        timeout_seconds: int = PENDING_TIMEOUT_SECONDS,
        interval_seconds: int = PENDING_SWEEP_INTERVAL_SECONDS
    ):
        self.timeout_seconds = timeout_seconds
        self.interval_seconds = interval_seconds
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    @property
    def enabled(self) -> bool:
        return self.timeout_seconds > 0

    def start(self):
        """Démarre le scheduler si un timeout est configuré"""
        if not self.enabled:
            logger.info("Receipt sweep disabled (PENDING_TIMEOUT_SECONDS=0)")
            return

        self.scheduler.add_job(
            self.sweep,
            IntervalTrigger(seconds=self.interval_seconds),
            id="pending_receipt_sweep",
            name="Expiration des logs PENDING",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(
            f"Scheduler démarré: sweep toutes les {self.interval_seconds}s, "
            f"timeout {self.timeout_seconds}s"
        )

    def stop(self):
        """Arrête le scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler arrêté")

    async def sweep(self) -> int:
        try:
            return await expire_stale_pending(self.timeout_seconds)
        except Exception as e:
            logger.error(f"Receipt sweep failed: {str(e)}")
            return 0


receipt_sweeper = ReceiptSweepScheduler()
