"""
Root pytest configuration for the Django project.

Settings come from config.settings (app/ is on the path via pytest's
pythonpath option). App-specific fixtures are defined in each app's
tests/conftest.py.
"""

import os

import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()
