# backend/tests/conftest.py
"""
Pytest configuration shared by every test package.

Settings are read once at import time, so the environment is pinned here
before anything from venuebook is imported: an in-memory database, no
Redis, and the venue timezone the fixtures assume.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["VENUE_TIMEZONE"] = "Asia/Jakarta"
os.environ["ENVIRONMENT"] = "test"
