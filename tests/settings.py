"""Django settings for django-offers tests."""

SECRET_KEY = 'test-secret-key-for-django-offers'

DEBUG = True

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'django_offers',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

USE_TZ = True
TIME_ZONE = 'UTC'

AUTH_USER_MODEL = 'auth.User'

# No sleeping between read retries in tests
OFFERS_READ_RETRY_DELAY = 0
