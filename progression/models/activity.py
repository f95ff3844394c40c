"""
Activity event models

One model per activity kind, discriminated on `activity_type`. Raw events
from session/UI code go through parse_activity(); an unknown activity type
becomes an UnrecognizedActivity that every engine ignores.
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from progression.exceptions import ValidationError


class ActivityType(str, Enum):
    """Recognized activity kinds"""
    PROBLEM_SOLVED = "problem_solved"
    TOPIC_COMPLETED = "topic_completed"
    STUDY_SESSION_COMPLETED = "study_session_completed"
    DAILY_GOAL_ACHIEVED = "daily_goal_achieved"
    DAILY_STREAK_UPDATED = "daily_streak_updated"
    STREAK_MILESTONE = "streak_milestone"
    QUIZ_PERFECT = "quiz_perfect"
    HELP_FRIEND = "help_friend"
    QUEST_COMPLETED = "quest_completed"


class ActivityEvent(BaseModel):
    """Common fields of every activity event"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    activity_type: str
    timestamp: datetime

    def payload(self) -> dict[str, Any]:
        """Event-specific fields, without the envelope"""
        return self.model_dump(exclude={"activity_type", "timestamp"}, exclude_none=True)


class ProblemSolved(ActivityEvent):
    activity_type: Literal["problem_solved"] = "problem_solved"
    accuracy: Optional[float] = Field(default=None, ge=0, le=1)
    difficulty: Optional[float] = Field(default=None, ge=0)
    subject: Optional[str] = None
    topic: Optional[str] = None


class TopicCompleted(ActivityEvent):
    activity_type: Literal["topic_completed"] = "topic_completed"
    subject: Optional[str] = None
    topic: Optional[str] = None
    first_try: bool = False


class StudySessionCompleted(ActivityEvent):
    activity_type: Literal["study_session_completed"] = "study_session_completed"
    duration: float = Field(ge=0, description="Minutes studied")
    subject: Optional[str] = None
    topic: Optional[str] = None


class DailyGoalAchieved(ActivityEvent):
    activity_type: Literal["daily_goal_achieved"] = "daily_goal_achieved"


class DailyStreakUpdated(ActivityEvent):
    activity_type: Literal["daily_streak_updated"] = "daily_streak_updated"
    streak_days: int = Field(ge=0)


class StreakMilestoneReached(ActivityEvent):
    activity_type: Literal["streak_milestone"] = "streak_milestone"
    streak_days: int = Field(ge=0)


class QuizPerfect(ActivityEvent):
    activity_type: Literal["quiz_perfect"] = "quiz_perfect"
    accuracy: Optional[float] = Field(default=None, ge=0, le=1)
    subject: Optional[str] = None
    topic: Optional[str] = None


class HelpFriend(ActivityEvent):
    activity_type: Literal["help_friend"] = "help_friend"
    friend_id: Optional[str] = None


class QuestCompleted(ActivityEvent):
    activity_type: Literal["quest_completed"] = "quest_completed"
    quest_id: Optional[str] = None
    quest_xp: Optional[int] = Field(default=None, ge=0)


class UnrecognizedActivity(ActivityEvent):
    """Activity type this engine does not know; carried through untouched"""
    payload_data: dict[str, Any] = Field(default_factory=dict)

    def payload(self) -> dict[str, Any]:
        return dict(self.payload_data)


Activity = Annotated[
    Union[
        ProblemSolved,
        TopicCompleted,
        StudySessionCompleted,
        DailyGoalAchieved,
        DailyStreakUpdated,
        StreakMilestoneReached,
        QuizPerfect,
        HelpFriend,
        QuestCompleted,
    ],
    Field(discriminator="activity_type"),
]

_activity_adapter = TypeAdapter(Activity)

KNOWN_ACTIVITY_TYPES = frozenset(t.value for t in ActivityType)


def parse_activity(data: dict[str, Any], timestamp: Optional[datetime] = None) -> ActivityEvent:
    """
    Build a typed activity event from a raw {activity_type, payload, timestamp} dict

    Payload fields may be nested under "payload" or given at the top level.

    Args:
        data: Raw event
        timestamp: Used when the event carries no timestamp

    Returns:
        The matching ActivityEvent subclass, or UnrecognizedActivity

    Raises:
        ValidationError: A known activity type with a malformed payload
    """
    activity_type = data.get("activity_type")
    payload = dict(data.get("payload") or {})
    fields = {**payload, **{k: v for k, v in data.items() if k != "payload"}}
    if fields.get("timestamp") is None:
        if timestamp is None:
            raise ValidationError("Activity event has no timestamp", field="timestamp")
        fields["timestamp"] = timestamp

    if activity_type not in KNOWN_ACTIVITY_TYPES:
        return UnrecognizedActivity(
            activity_type=str(activity_type),
            timestamp=fields["timestamp"],
            payload_data=payload,
        )

    try:
        return _activity_adapter.validate_python(fields)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Malformed {activity_type} event: {e.errors()[0]['msg']}",
            field="payload",
            value=payload,
            operation="parse_activity",
            cause=e
        )


# Activities that count as studying for streaks and time-of-day badges
STUDY_ACTIVITY_TYPES = frozenset({
    ActivityType.PROBLEM_SOLVED.value,
    ActivityType.TOPIC_COMPLETED.value,
    ActivityType.STUDY_SESSION_COMPLETED.value,
    ActivityType.QUIZ_PERFECT.value,
    ActivityType.DAILY_GOAL_ACHIEVED.value,
})
