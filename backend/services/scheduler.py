"""
Scheduler Service - جدولة المهام الدورية
- متابعة موقع الموظف كل 60 ثانية أثناء تسجيل الدخول
"""
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.jobstores.base import JobLookupError

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


class PollScheduler:
    """
    Recurring poll jobs on the shared scheduler.

    One job per id; arming an id again replaces the previous job, and a job
    never overlaps itself (`max_instances=1`).
    """

    def __init__(self, backend: AsyncIOScheduler = None):
        self.backend = backend if backend is not None else scheduler

    def arm(self, job_id: str, func, interval_seconds: float, args: list = None) -> str:
        self.backend.add_job(
            func,
            IntervalTrigger(seconds=interval_seconds),
            args=args or [],
            id=job_id,
            name=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        logger.info(f"⏰ Poll job armed: {job_id} every {interval_seconds}s")
        return job_id

    def cancel(self, job_id: str) -> bool:
        try:
            self.backend.remove_job(job_id)
        except JobLookupError:
            return False
        logger.info(f"Poll job cancelled: {job_id}")
        return True

    def is_armed(self, job_id: str) -> bool:
        return self.backend.get_job(job_id) is not None


def init_scheduler():
    """تهيئة وتشغيل الـ scheduler"""
    if not scheduler.running:
        scheduler.start()
    logger.info("✅ تم تشغيل جدولة المهام")


def shutdown_scheduler():
    """إيقاف الـ scheduler"""
    if scheduler.running:
        scheduler.shutdown(wait=False)
    logger.info("🛑 تم إيقاف جدولة المهام")
