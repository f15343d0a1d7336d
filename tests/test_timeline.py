"""Tests for visa application timeline arithmetic."""

from datetime import date

from services.timeline import DEFAULT_PROCESSING_TIME, calculate_visa_timeline


def test_timeline_for_known_processing_time():
    timeline = calculate_visa_timeline(10, date(2026, 6, 1), date(2026, 5, 1))

    assert timeline.latest_submission_date == date(2026, 5, 15)
    assert timeline.recommended_submission_date == date(2026, 5, 1)
    assert timeline.expected_decision_date == date(2026, 5, 11)


def test_timeline_without_submission_has_no_decision_date():
    timeline = calculate_visa_timeline(10, date(2026, 6, 1))

    assert timeline.expected_decision_date is None
    assert timeline.to_dict()["expected_decision_date"] is None


def test_missing_processing_time_uses_default():
    timeline = calculate_visa_timeline(None, date(2026, 6, 1), date(2026, 5, 1))

    assert DEFAULT_PROCESSING_TIME == 15
    assert timeline.latest_submission_date == date(2026, 5, 10)
    assert timeline.recommended_submission_date == date(2026, 4, 26)
    assert timeline.expected_decision_date == date(2026, 5, 16)
