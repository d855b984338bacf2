from pydantic import BaseModel, field_validator
import datetime

from trialdesk.models import TeacherStatus, TeacherType, UserRole


class TeacherSchema(BaseModel):
    id: str
    full_name: str
    teacher_type: TeacherType
    status: TeacherStatus = TeacherStatus.APPROVED
    role: UserRole = UserRole.TEACHER


class AvailabilitySchema(BaseModel):
    teacher_id: str
    date: datetime.date             # UTC day
    time_slot: str                  # UTC "HH:MM" or "HH:MM:SS"
    is_available: bool = True

    @field_validator("time_slot")
    @classmethod
    def on_half_hour_grid(cls, v):
        parts = v.split(":")
        assert len(parts) in (2, 3) and all(p.isdigit() for p in parts), f"Bad time slot: {v}"
        h, m = int(parts[0]), int(parts[1])
        s = int(parts[2]) if len(parts) > 2 else 0
        assert 0 <= h <= 23 and m in (0, 30) and s == 0, f"Bad time slot: {v}"
        return f"{h:02d}:{m:02d}:00"
