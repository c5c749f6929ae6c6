"""
ASGI config for the posyandu project (HTTP only).
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'posyandu.settings')

application = get_asgi_application()
