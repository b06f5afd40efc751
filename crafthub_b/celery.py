import os
from celery import Celery
from celery.schedules import crontab


os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'crafthub_b.settings')
app = Celery('crafthub_b')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()



# Define all beat schedules in one dictionary
app.conf.beat_schedule = {
    # ✅ Read-repair creations / projects / supporting counters (Daily)
    'reconcile-user-counters-every-day': {
        'task': 'apps.posts.tasks.reconcile_user_counters',
        'schedule': crontab(hour=3, minute=0),
    },
}



# celery -A crafthub_b worker -l info
# celery -A crafthub_b beat -l info
