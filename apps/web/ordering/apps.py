"""Django app configuration for table ordering."""

from django.apps import AppConfig


class OrderingConfig(AppConfig):
    """Table ordering app configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.ordering"
    verbose_name = "Table Ordering"
