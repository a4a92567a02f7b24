"""
WSGI config for the ConstruçãoPro backend.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'construcaopro.config.settings')

application = get_wsgi_application()
