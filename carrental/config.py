"""
Application settings, loaded by ``create_app`` with ``app.config.from_object``.
Every value can be overridden from the environment.
"""

import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")

    # Pickle file backing the Store singleton; None -> <repo>/data.pkl
    RENTAL_DATA_PATH = os.getenv("RENTAL_DATA_PATH") or None

    # Business timezone: defines "today" for start-date rules and invoice stamps
    RENTAL_TIMEZONE = os.getenv("RENTAL_TIMEZONE", "Pacific/Auckland")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    LOG_LEVEL = "WARNING"
