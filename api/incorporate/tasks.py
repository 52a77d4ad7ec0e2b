from celery import Celery
from sqlmodel import Session

from . import db
from .config import REDIS_URL, WEB_BASE_URL, WORKER_QUEUE
from .reconcile import reconcile_notifications
from .services import build_services

cel = Celery("incorporate", broker=REDIS_URL, backend=REDIS_URL)


@cel.task(name="reconcile_notifications", queue=WORKER_QUEUE)
def reconcile_notifications_task(base_url: str = WEB_BASE_URL):
    services = build_services()
    with Session(db.engine) as session:
        return reconcile_notifications(session, services, base_url)
