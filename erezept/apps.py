from django.apps import AppConfig


class ErezeptConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'erezept'
    verbose_name = 'E-Rezept'
