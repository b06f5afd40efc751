from django.apps import AppConfig


class DocstoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.docstore'
    verbose_name = 'Document Store'
