"""
Celery configuration for background task processing.
"""
import os
from celery import Celery
from kombu import Queue

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('league')

# All celery-related configuration keys use the CELERY_ prefix in settings.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# Scheduled maintenance runs on its own queue
app.conf.task_routes = {
    'entries.tasks.auto_assign_rest_days_task': {'queue': 'maintenance'},
}

app.conf.task_queues = (
    Queue('celery'),
    Queue('maintenance'),
)

# Tuning defaults for workers
app.conf.worker_prefetch_multiplier = 1
app.conf.task_acks_late = True
