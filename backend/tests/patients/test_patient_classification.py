from datetime import date

import pytest

from clinica_dental.services.patients import (
    calculate_age,
    classify_patient_type,
    classify_record_category,
    pregnancy_status,
    whatsapp_url,
)

LAUNCH = date(2026, 2, 2)


@pytest.mark.parametrize(
    ("age", "expected"),
    [
        (None, "adulto"),
        (5, "menor"),
        (17, "menor"),
        (18, "adulto"),
        (59, "adulto"),
        (60, "3ra_edad"),
        (80, "4ta_edad"),
    ],
)
def test_classify_patient_type(age, expected):
    assert classify_patient_type(age) == expected


def test_calculate_age_handles_leap_day_birthdays():
    assert calculate_age(date(2000, 2, 29), today=date(2025, 2, 28)) == 24
    assert calculate_age(date(2000, 2, 29), today=date(2025, 3, 1)) == 25
    assert calculate_age(None) is None


def test_record_category_historical_before_launch():
    category = classify_record_category(
        date(2025, 11, 3), None, launch_date=LAUNCH, today=date(2026, 3, 1)
    )
    assert category == "historical"


def test_record_category_ignores_history_when_disabled():
    category = classify_record_category(
        date(2025, 11, 3), None, launch_date=LAUNCH, historical_enabled=False, today=date(2026, 3, 1)
    )
    assert category == "active"


def test_record_category_archived_after_inactivity():
    category = classify_record_category(
        date(2026, 3, 1),
        date(2026, 3, 10),
        launch_date=LAUNCH,
        archive_after_years=5,
        today=date(2031, 3, 11),
    )
    assert category == "archived"


def test_pregnancy_status_tracks_weeks_since_intake():
    status = pregnancy_status(12, date(2026, 3, 2), today=date(2026, 4, 13))
    assert status is not None
    assert status.current_weeks == 18
    assert status.weeks_remaining == 22
    assert status.expected_end == date(2026, 9, 14)
    assert status.active is True


def test_pregnancy_status_ends_at_term():
    status = pregnancy_status(38, date(2026, 3, 2), today=date(2026, 6, 1))
    assert status.active is False
    assert status.current_weeks == 40
    assert status.weeks_remaining == 0


def test_pregnancy_status_rejects_out_of_range_weeks():
    with pytest.raises(ValueError):
        pregnancy_status(41, date(2026, 3, 2))
    assert pregnancy_status(None, date(2026, 3, 2)) is None


@pytest.mark.parametrize(
    ("phone", "country", "expected"),
    [
        ("9999-8888", "HN", "https://wa.me/50499998888"),
        ("+504 9999 8888", "HN", "https://wa.me/50499998888"),
        ("(555) 010-2030", "US", "https://wa.me/15550102030"),
        ("", "HN", None),
    ],
)
def test_whatsapp_url(phone, country, expected):
    assert whatsapp_url(phone, country) == expected
