import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "chatbrain.settings")

app = Celery("chatbrain")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
# indexing a large file embeds one chunk per second
app.conf.update(task_track_started=True, task_time_limit=3600)
