"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from flask_jwt_extended import create_access_token  # noqa: E402

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.country import Country  # noqa: E402
from models.user import User  # noqa: E402
from models.visa_requirement import VisaRequiredDocument, VisaRequirement  # noqa: E402
from services.rules_engine import VisaRulesEngine  # noqa: E402
from storage.sql_storage import SQLReferenceStore  # noqa: E402

TODAY = date(2026, 3, 1)


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    LOG_LEVEL = "DEBUG"


COUNTRIES = (
    ("NG", "Nigeria", "AFRICA", ["ECOWAS", "AU"], True),
    ("GH", "Ghana", "AFRICA", ["ECOWAS", "AU"], True),
    ("KE", "Kenya", "AFRICA", ["EAC", "AU", "COMESA"], True),
    ("RW", "Rwanda", "AFRICA", ["EAC", "AU"], False),
    ("LY", "Libya", "AFRICA", ["AU"], False),
    ("ZA", "South Africa", "AFRICA", ["SADC", "AU"], False),
    ("AE", "United Arab Emirates", "ASIA", ["GCC"], False),
    ("SA", "Saudi Arabia", "ASIA", ["GCC"], False),
    ("IN", "India", "ASIA", [], False),
    ("CN", "China", "ASIA", [], False),
    ("TH", "Thailand", "ASIA", [], False),
    ("US", "United States", "NORTH_AMERICA", [], False),
    ("GB", "United Kingdom", "EUROPE", [], False),
)


@pytest.fixture()
def app() -> Flask:
    """Create an application with an in-memory database.

    The application context stays pushed for the whole test so ORM objects
    created by fixtures remain attached to the session the test uses.
    """

    application = create_app(_BaseTestConfig)

    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


def _rule(passport, destination, visa_type, **fields) -> VisaRequirement:
    rule = VisaRequirement(
        passport_country=passport,
        destination_country=destination,
        travel_purpose=fields.pop("travel_purpose", "TOURISM"),
        visa_type=visa_type,
        **fields,
    )
    return VisaRequirement.publish(rule, effective=date(2026, 1, 1))


@pytest.fixture()
def reference_data(app: Flask) -> SimpleNamespace:
    """Insert countries and a small set of visa rules."""

    countries = {}
    for code, name, continent, blocs, endemic in COUNTRIES:
        country = Country(
            name=name,
            iso_code=code,
            continent=continent,
            regional_blocs=blocs,
            yellow_fever_endemic=endemic,
        )
        db.session.add(country)
        countries[code] = country
    db.session.flush()

    rules = SimpleNamespace(
        ng_us=_rule(
            countries["NG"],
            countries["US"],
            "EMBASSY_VISA",
            application_method="EMBASSY",
            processing_time_min=5,
            processing_time_max=10,
            visa_cost=185,
            allowed_stay_days=180,
            official_guidelines_url="https://travel.state.gov",
        ),
        ng_gh=_rule(
            countries["NG"],
            countries["GH"],
            "EMBASSY_VISA",
            processing_time_min=5,
            processing_time_max=10,
        ),
        ng_za=_rule(
            countries["NG"],
            countries["ZA"],
            "EMBASSY_VISA",
            processing_time_min=5,
            processing_time_max=15,
            yellow_fever_required="CONDITIONAL",
        ),
        in_ae=_rule(
            countries["IN"],
            countries["AE"],
            "E_VISA",
            application_method="ONLINE",
            application_url="https://smartservices.icp.gov.ae",
            processing_time_min=3,
            processing_time_max=5,
            visa_cost=90,
            eligibility_conditions={
                "conditional_access": {
                    "requires_valid_visa_from": ["US", "GB", "DE", "FR", "IT", "ES"],
                    "min_visa_validity_days": 180,
                }
            },
        ),
        ae_sa=_rule(
            countries["AE"],
            countries["SA"],
            "E_VISA",
            processing_time_min=1,
            processing_time_max=3,
            eligibility_conditions={"exempt_blocs": ["GCC"]},
        ),
        th_default=_rule(
            None,
            countries["TH"],
            "VISA_FREE",
            application_method="NONE",
            processing_time_min=0,
            processing_time_max=0,
            visa_free_days=30,
        ),
    )

    for order, (document_type, mandatory) in enumerate(
        (
            ("INVITATION_LETTER", False),
            ("PASSPORT", True),
            ("PHOTO", True),
            ("BANK_STATEMENT", True),
        )
    ):
        db.session.add(
            VisaRequiredDocument(
                visa_requirement=rules.ng_us,
                document_type=document_type,
                mandatory=mandatory,
                display_order=order,
            )
        )
    db.session.commit()

    return SimpleNamespace(countries=countries, rules=rules)


@pytest.fixture()
def engine(reference_data) -> VisaRulesEngine:
    return VisaRulesEngine(SQLReferenceStore())


@pytest.fixture()
def traveler(app: Flask) -> User:
    """A Nigerian passport holder with a long-valid passport."""

    user = User(
        email="traveler@example.com",
        passport_country_code="NG",
        passport_expiry_date=TODAY + timedelta(days=3650),
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture()
def auth_headers(app: Flask, traveler: User) -> dict:
    token = create_access_token(identity=str(traveler.id))
    return {"Authorization": f"Bearer {token}"}
