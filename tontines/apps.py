from django.apps import AppConfig


class TontinesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'tontines'
    verbose_name = 'Tontines'
