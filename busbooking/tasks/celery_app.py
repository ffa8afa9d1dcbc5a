from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import worker_process_init

from busbooking.core.config import get_settings
from busbooking.core.logging import setup_logging


def _redis_url_for_celery(url: str) -> str:
    """Celery requires ssl_cert_reqs for rediss:// (e.g. Upstash TLS)."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = ["CERT_NONE"]
        new_query = urlencode(qs, doseq=True)
        return urlunparse(parsed._replace(query=new_query))
    return url


_settings = get_settings()
_redis_url = _redis_url_for_celery(_settings.REDIS_URL)

celery = Celery(
    "busbooking",
    broker=_redis_url,
    backend=_redis_url,
    include=["busbooking.tasks.jobs"],
)

celery.conf.task_acks_late = True


@worker_process_init.connect
def on_worker_process_init(**kwargs):
    from busbooking.db.session import init_engine
    setup_logging(_settings.LOG_LEVEL)
    init_engine(_settings)


celery.conf.beat_schedule = {
    "process-email-queue-every-2-minutes": {
        "task": "busbooking.tasks.jobs.process_email_queue",
        "schedule": 120.0,
        "kwargs": {"limit": 50},
    },
    "reconcile-seat-counters-hourly": {
        "task": "busbooking.tasks.jobs.reconcile_seat_counters",
        "schedule": 3600.0,
    },
}
