# backend/calendar_api/__init__.py
"""
Package init: load environment variables from a .env file if present.
This runs before the settings module reads os.environ.
"""

from dotenv import load_dotenv

load_dotenv()

__version__ = "0.1.0"
