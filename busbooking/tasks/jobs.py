from busbooking.core.config import get_settings
from busbooking.tasks.celery_app import celery
from busbooking.tasks import worker_jobs

@celery.task(
    name="busbooking.tasks.jobs.send_booking_notification",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_kwargs={"max_retries": get_settings().NOTIFY_MAX_RETRIES},
)
def send_booking_notification(kind: str, summary: dict):
    return worker_jobs.send_booking_notification(kind, summary)

@celery.task(name="busbooking.tasks.jobs.process_email_queue")
def process_email_queue(limit: int = 50):
    return worker_jobs.process_email_queue(limit=limit)

@celery.task(name="busbooking.tasks.jobs.reconcile_seat_counters")
def reconcile_seat_counters(fix: bool = False):
    return worker_jobs.reconcile_seat_counters(fix=fix)
