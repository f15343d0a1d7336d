"""Database initialization and model exports."""

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .country import Country  # noqa: E402,F401
from .visa_requirement import VisaRequirement, VisaRequiredDocument  # noqa: E402,F401
from .trip import Trip, TripDestination  # noqa: E402,F401
from .visa_application import (  # noqa: E402,F401
    ApplicationStatusChange,
    VisaApplication,
    VisaApplicationDocument,
)
from .notification import Notification  # noqa: E402,F401

__all__ = [
    "db",
    "User",
    "Country",
    "VisaRequirement",
    "VisaRequiredDocument",
    "Trip",
    "TripDestination",
    "VisaApplication",
    "ApplicationStatusChange",
    "VisaApplicationDocument",
    "Notification",
]
