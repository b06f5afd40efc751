from django.apps import AppConfig


class DelegationConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.delegation'
    verbose_name = 'Delegated Permissions'
