from datetime import date, timezone

import pytest

from app.core.utils import compute_end_time, format_hhmm, friendly_date, parse_hhmm, utcnow, weekday_name
from app.db.models import Appointment, Chat, ChatMessage, Schedule, Specialist, User

def test_end_time_same_day():
    assert compute_end_time("09:00", "30") == ("09:30", False)
    assert compute_end_time("10:15", 45) == ("11:00", False)

def test_end_time_rolls_over_midnight():
    end = compute_end_time("23:50", "30")
    assert end.time == "00:20"
    assert end.rolls_over is True

def test_end_time_exactly_midnight_rolls_over():
    assert compute_end_time("23:00", 60) == ("00:00", True)

@pytest.mark.parametrize("start", ["24:00", "9:00", "12:60", "", "noon"])
def test_invalid_start_time(start):
    with pytest.raises(ValueError):
        compute_end_time(start, 30)

@pytest.mark.parametrize("duration", [0, 20, 90, "abc"])
def test_invalid_duration(duration):
    with pytest.raises(ValueError):
        compute_end_time("09:00", duration)

def test_parse_and_format_hhmm():
    assert parse_hhmm("00:00") == 0
    assert parse_hhmm("16:45") == 16 * 60 + 45
    assert format_hhmm(parse_hhmm("07:05")) == "07:05"
    assert format_hhmm(24 * 60 + 20) == "00:20"

def test_friendly_date_and_weekday():
    assert friendly_date(date(2025, 6, 2)) == "Monday, June 2, 2025"
    assert weekday_name(date(2025, 6, 7)) == "Saturday"

def test_utcnow_is_timezone_aware():
    assert utcnow().tzinfo is timezone.utc

@pytest.mark.parametrize("model, column", [
    (User, "created_at"),
    (Specialist, "created_at"),
    (Schedule, "updated_at"),
    (Appointment, "updated_at"),
    (Chat, "updated_at"),
    (ChatMessage, "sent_at"),
])
def test_timestamps_are_timezone_aware(model, column):
    assert model.__table__.c[column].type.timezone is True

def test_model_defaults_are_timezone_aware():
    specialist = Specialist(first_name="Amina", last_name="Njoya", email="amina@example.com", telephone="+237600000000")
    assert specialist.created_at.tzinfo is not None
