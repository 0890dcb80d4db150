"""App configuration for the conferences app."""

from django.apps import AppConfig


class ConferencesConfig(AppConfig):
    """Configuration for the conferences app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.conferences'

    def ready(self):
        """Initialize app when ready."""
        import apps.conferences.signals  # noqa
