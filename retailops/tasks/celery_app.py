from celery import Celery

from retailops.config import get_settings

settings = get_settings()

# Create Celery application
celery_app = Celery(
    "retailops",
    broker=settings.CELERY_BROKER_URL,
    include=["retailops.tasks.stock_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    task_ignore_result=True,
    timezone="UTC",
    enable_utc=True,

    # Task settings
    task_time_limit=60,
    task_soft_time_limit=45,

    # Worker settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
)
