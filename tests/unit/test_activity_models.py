"""Unit tests for activity event parsing (progression/models/activity.py)"""
import pydantic
import pytest
from datetime import datetime, timezone

from progression.exceptions import ValidationError
from progression.models.activity import (
    ProblemSolved,
    QuizPerfect,
    StudySessionCompleted,
    UnrecognizedActivity,
    parse_activity,
)


class TestParseActivity:
    """Test raw event dicts become typed events"""

    def test_nested_payload(self, fixed_now):
        event = parse_activity({
            "activity_type": "problem_solved",
            "payload": {"accuracy": 0.95, "difficulty": 8, "subject": "math"},
            "timestamp": fixed_now,
        })

        assert isinstance(event, ProblemSolved)
        assert event.accuracy == 0.95
        assert event.payload() == {"accuracy": 0.95, "difficulty": 8, "subject": "math"}

    def test_top_level_fields_and_iso_timestamp(self):
        event = parse_activity({
            "activity_type": "study_session_completed",
            "duration": 45,
            "timestamp": "2024-01-15T08:30:00Z",
        })

        assert isinstance(event, StudySessionCompleted)
        assert event.duration == 45
        assert event.timestamp == datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)

    def test_default_timestamp(self, fixed_now):
        event = parse_activity({"activity_type": "quiz_perfect"}, timestamp=fixed_now)

        assert isinstance(event, QuizPerfect)
        assert event.timestamp == fixed_now
        assert event.payload() == {}

    def test_missing_timestamp(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_activity({"activity_type": "problem_solved"})

        assert exc_info.value.field == "timestamp"

    def test_unknown_type_is_unrecognized(self, fixed_now):
        """Test unknown activity types are carried, not rejected"""
        event = parse_activity({
            "activity_type": "watched_video",
            "payload": {"video_id": "v1"},
            "timestamp": fixed_now,
        })

        assert isinstance(event, UnrecognizedActivity)
        assert event.activity_type == "watched_video"
        assert event.payload() == {"video_id": "v1"}

    def test_malformed_payload(self, fixed_now):
        """Test a known type with invalid fields raises the domain error"""
        with pytest.raises(ValidationError) as exc_info:
            parse_activity({
                "activity_type": "problem_solved",
                "payload": {"accuracy": 1.7},
                "timestamp": fixed_now,
            })

        assert exc_info.value.field == "payload"
        assert exc_info.value.operation == "parse_activity"


def test_events_are_immutable(fixed_now):
    event = ProblemSolved(timestamp=fixed_now, accuracy=0.5)

    with pytest.raises(pydantic.ValidationError):
        event.accuracy = 0.9
