# Load the Celery app with Django so shared_task binds to it and
# tasks in every installed app are discovered.
from config.celery import app as celery_app

__all__ = ("celery_app",)
