import os

from celery import Celery
from celery.schedules import crontab

_redis_host = os.environ.get("REDIS_HOST", "redis")
_redis_port = os.environ.get("REDIS_PORT", "6379")

celery_app = Celery(
    "famifirst_worker",
    broker=f"redis://{_redis_host}:{_redis_port}/0",
    backend=f"redis://{_redis_host}:{_redis_port}/1",
    include=["worker.tasks"],
)

celery_app.conf.beat_schedule = {
    "generate-recurring-task-instances": {
        "task": "worker.tasks.generate_recurring_task_instances",
        "schedule": crontab(hour=2, minute=0),
    },
}
celery_app.conf.timezone = "UTC"
