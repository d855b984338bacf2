from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Literal, Optional


class StudentEntry(BaseModel):
    name: str = Field(min_length=1)
    age: int = Field(ge=3, le=99)


class BookingSubject(BaseModel):
    """Who the trial is for. Stored verbatim on the session record."""
    student_name: Optional[str] = None
    country: str = Field(min_length=1)
    phone: str = Field(min_length=5)
    platform: Literal["zoom", "google-meet"] = "zoom"
    age: Optional[int] = Field(default=None, ge=3, le=99)
    notes: Optional[str] = None
    parent_name: Optional[str] = None
    students: Optional[list[StudentEntry]] = None

    @field_validator("student_name", "country", "phone", "parent_name", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def needs_a_student(self):
        if not self.student_name and not self.students:
            raise ValueError("Either student_name or students must be provided")
        return self

    @property
    def is_multi_student(self) -> bool:
        return bool(self.students)

    def student_names(self) -> str:
        if self.students:
            return ", ".join(s.name for s in self.students)
        return self.student_name
