from django.apps import AppConfig


class LifecycleConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'lifecycle'
    verbose_name = 'Mentorship Lifecycle'

    def ready(self):
        # Connect auth/audit receivers when Django starts.
        from . import signals  # noqa: F401
