"""
Pytest configuration for Django tests.
"""
import os

# pytest-django reads this before collecting the Django TestCase classes.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'bufoods.settings')
