"""Tests for the User and Country model helpers."""

from datetime import date

from models import db
from models.country import Country
from models.user import User
from services.rules_engine import UserContext


def test_user_held_visa_helpers(app):
    """Held visa codes are normalized and expiries parsed."""

    user = User(
        email="helper@example.com",
        passport_country_code="IN",
        passport_expiry_date=date(2030, 1, 1),
        valid_visa_countries=[" us", "GB", ""],
        valid_visa_expiry_dates={"US": "2027-05-01"},
    )
    db.session.add(user)
    db.session.commit()

    assert user.held_visa_countries() == ["US", "GB"]
    assert user.held_visa_expiry("us") == date(2027, 5, 1)
    assert user.held_visa_expiry("GB") is None
    assert user.has_complete_passport_profile() is True

    context = UserContext.from_user(user)
    assert context.valid_visa_from == ("US", "GB")
    assert dict(context.visa_expiry_dates) == {"US": date(2027, 5, 1)}
    assert context.passport_expiry_date == date(2030, 1, 1)


def test_incomplete_profile(app):
    user = User(email="partial@example.com", passport_country_code="NG")
    db.session.add(user)
    db.session.commit()

    assert user.has_complete_passport_profile() is False
    assert user.to_dict()["valid_visa_countries"] == []
    assert UserContext.from_user(None) == UserContext()


def test_country_bloc_membership(app):
    country = Country(name="Kenya", iso_code="KE", regional_blocs=["EAC", "AU"])
    db.session.add(country)
    db.session.commit()

    assert country.is_in_bloc("EAC")
    assert not country.is_in_bloc("ECOWAS")
    assert country.summary() == {"name": "Kenya", "iso_code": "KE"}
