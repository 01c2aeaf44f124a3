"""Django app configuration for django-offers."""

from django.apps import AppConfig


class DjangoOffersConfig(AppConfig):
    """App configuration for django-offers."""

    name = 'django_offers'
    verbose_name = 'Django Offers'
    default_auto_field = 'django.db.models.BigAutoField'
