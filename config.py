"""Application configuration module."""

import os


class Config:
    """Base configuration for the Flask application."""

    # Core
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Visa engine
    DEFAULT_TRAVEL_PURPOSE = os.getenv("DEFAULT_TRAVEL_PURPOSE", "TOURISM")
    DEADLINE_ALERT_DAYS = int(os.getenv("DEADLINE_ALERT_DAYS", "7"))
