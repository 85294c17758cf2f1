from celery import Celery

from rfblind.config import cnf

app = Celery(
    "celery_tasks",
    broker=cnf.broker_url,
    backend=cnf.backend_url,
    include=[
        "rfblind.celery_tasks.rf_tasks",
    ],
)

app.conf.update(
    timezone="Europe/Athens",
    enable_utc=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    task_time_limit=60 * 60,  # 60 minutes
    task_soft_time_limit=55 * 60,  # 55 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)
