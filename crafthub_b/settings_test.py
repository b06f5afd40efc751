# crafthub_b/settings_test.py
from .settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

# Celery runs inline, without a broker
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = 'memory://'

CHANNEL_LAYERS = {
    'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'},
}

# Test transactions are bound to the main thread's connection
PING_FANOUT_MAX_WORKERS = 1

LOG_LEVEL = 'WARNING'
LOGGING['root']['level'] = LOG_LEVEL  # noqa: F405
