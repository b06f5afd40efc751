# crafthub_b/settings.py
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "crafthub-insecure-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "False").lower() in ("1", "true", "yes")
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]


# Applications -------------------------------------------------------------------------------------
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',
    'channels',

    'apps.docstore',
    'apps.delegation',
    'apps.profiles',
    'apps.interactions',
    'apps.comments',
    'apps.notifications',
    'apps.communities',
    'apps.posts',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'crafthub_b.urls'
ASGI_APPLICATION = 'crafthub_b.asgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]


# Database -----------------------------------------------------------------------------------------
# The document store is the only consumer; it never opens multi-document transactions.
DATABASES = {
    'default': {
        'ENGINE': os.getenv("DB_ENGINE", 'django.db.backends.sqlite3'),
        'NAME': os.getenv("DB_NAME", str(BASE_DIR / 'crafthub.sqlite3')),
        'USER': os.getenv("DB_USER", ""),
        'PASSWORD': os.getenv("DB_PASSWORD", ""),
        'HOST': os.getenv("DB_HOST", ""),
        'PORT': os.getenv("DB_PORT", ""),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True
STATIC_URL = 'static/'


# Redis / Celery / Channels ------------------------------------------------------------------------
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")

CELERY_BROKER_URL = REDIS_URL
CELERY_RESULT_BACKEND = None
CELERY_TASK_IGNORE_RESULT = True
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE

CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels_redis.core.RedisChannelLayer',
        'CONFIG': {"hosts": [REDIS_URL]},
    },
}


# REST Framework -----------------------------------------------------------------------------------
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'EXCEPTION_HANDLER': 'apps.core.exceptions.custom_exception_handler',
}


# Document store collections -----------------------------------------------------------------------
DOCUMENT_STORE = {
    "users": {
        "creator": os.getenv("CREATOR_COLLECTION_ID", "creator"),
        "support": os.getenv("SUPPORT_COLLECTION_ID", "support"),
    },
    "posts": {
        "creation": os.getenv("CREATION_COLLECTION_ID", "creation"),
        "project": os.getenv("PROJECT_COLLECTION_ID", "project"),
    },
    "comments": {
        "comment": os.getenv("COMMENT_COLLECTION_ID", "comment"),
        "feedback": os.getenv("FEEDBACK_COLLECTION_ID", "feedback"),
        "comment_reply": os.getenv("COMMENT_REPLY_COLLECTION_ID", "commentReply"),
        "feedback_reply": os.getenv("FEEDBACK_REPLY_COLLECTION_ID", "feedbackReply"),
    },
    "interactions": {
        "post_like": os.getenv("POST_LIKE_COLLECTION_ID", "postLike"),
        "item_like": os.getenv("ITEM_LIKE_COLLECTION_ID", "itemLike"),
        "save": os.getenv("SAVE_COLLECTION_ID", "save"),
    },
    "communities": {
        "community": os.getenv("COMMUNITY_COLLECTION_ID", "community"),
        "topic": os.getenv("TOPIC_COLLECTION_ID", "topic"),
        "member": os.getenv("MEMBER_COLLECTION_ID", "member"),
        "discussion": os.getenv("DISCUSSION_COLLECTION_ID", "discussion"),
        "ping": os.getenv("PING_COLLECTION_ID", "ping"),
    },
    "notifications": {
        "notification": os.getenv("NOTIFICATION_COLLECTION_ID", "notification"),
        "community_notification": os.getenv("COMMUNITY_NOTIFICATION_COLLECTION_ID", "communityNotification"),
    },
}


# Delegated permission functions -------------------------------------------------------------------
PERMISSION_FUNCTIONS = {
    "post_like": os.getenv("POST_LIKE_PERMISSION_FN", "postLikePermission"),
    "item_like": os.getenv("ITEM_LIKE_PERMISSION_FN", "itemLikePermission"),
    "save": os.getenv("SAVE_PERMISSION_FN", "savePermission"),
    "comment": os.getenv("COMMENT_PERMISSION_FN", "commentPermission"),
    "feedback": os.getenv("FEEDBACK_PERMISSION_FN", "feedbackPermission"),
    "comment_reply": os.getenv("COMMENT_REPLY_PERMISSION_FN", "commentReplyPermission"),
    "feedback_reply": os.getenv("FEEDBACK_REPLY_PERMISSION_FN", "feedbackReplyPermission"),
    "feedback_reply_parent": os.getenv("FEEDBACK_REPLY_PARENT_PERMISSION_FN", "feedbackReplyParentPermission"),
    "user_notification": os.getenv("USER_NOTIFICATION_PERMISSION_FN", "userNotificationPermission"),
    "community_notification": os.getenv("COMMUNITY_NOTIFICATION_PERMISSION_FN", "communityNotificationPermission"),
    "community_discussion": os.getenv("COMMUNITY_DISCUSSION_PERMISSION_FN", "communityDiscussionPermission"),
    "discussion_like": os.getenv("DISCUSSION_LIKE_PERMISSION_FN", "discussionLikePermission"),
    "discussion_save": os.getenv("DISCUSSION_SAVE_PERMISSION_FN", "discussionSavePermission"),
    "discussion_item_like": os.getenv("DISCUSSION_ITEM_LIKE_PERMISSION_FN", "discussionItemLikePermission"),
    "discussion_comment": os.getenv("DISCUSSION_COMMENT_PERMISSION_FN", "discussionCommentPermission"),
    "discussion_comment_reply": os.getenv("DISCUSSION_COMMENT_REPLY_PERMISSION_FN", "discussionCommentReplyPermission"),
}


# Fan-out / paging ---------------------------------------------------------------------------------
def _int_env(name, default):
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


PING_BATCH_SIZE = _int_env("PING_BATCH_SIZE", 100)
PING_FANOUT_MAX_WORKERS = _int_env("PING_FANOUT_MAX_WORKERS", 16)
NOTIFICATIONS_PAGE_SIZE = _int_env("NOTIFICATIONS_PAGE_SIZE", 15)
DOCUMENT_PAGE_SIZE = _int_env("DOCUMENT_PAGE_SIZE", 100)


# Logging ------------------------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s',
            'datefmt': '%H:%M:%S',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {'handlers': ['console'], 'level': 'WARNING', 'propagate': False},
        'celery': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
    },
}
