# mediq/schemas.py
import datetime as dt
from typing import Annotated, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from .models import ScheduleStatus  # Shared with the ORM column

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
TimeOfDay = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")]

T = TypeVar("T")


# --- Base Schemas ---
class BaseSchema(BaseModel):
    """camelCase on the wire, snake_case in Python, readable from ORM rows."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# --- Envelopes ---
class ApiResponse(BaseSchema, Generic[T]):
    success: bool = True
    data: T


class ErrorDetail(BaseSchema):
    code: str
    message: str


class ErrorResponse(BaseSchema):
    success: bool = False
    error: ErrorDetail


class DeleteResult(BaseSchema):
    deleted: bool = True


def envelope(data) -> dict:
    """Wrap a payload in the success envelope."""
    return {"success": True, "data": data}


# --- Patient Schemas ---
class PatientCreate(BaseSchema):
    patient_code: NonEmptyStr
    name: NonEmptyStr
    name_kana: NonEmptyStr
    voice_template: Optional[str] = None
    print_template: Optional[str] = None


class PatientUpdate(BaseSchema):
    patient_code: Optional[NonEmptyStr] = None
    name: Optional[NonEmptyStr] = None
    name_kana: Optional[NonEmptyStr] = None
    voice_template: Optional[str] = None
    print_template: Optional[str] = None


class PatientResponse(BaseSchema):
    id: int
    patient_code: str
    name: str
    name_kana: str
    voice_template: Optional[str] = None
    print_template: Optional[str] = None
    is_deleted: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


# --- Reference (master) Schemas ---
class MasterCreate(BaseSchema):
    name: NonEmptyStr


class MasterUpdate(BaseSchema):
    name: Optional[NonEmptyStr] = None


class MasterResponse(BaseSchema):
    id: int
    name: str
    is_deleted: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class DoctorCreate(BaseSchema):
    name: NonEmptyStr
    department_id: int


class DoctorUpdate(BaseSchema):
    name: Optional[NonEmptyStr] = None
    department_id: Optional[int] = None


class DoctorResponse(MasterResponse):
    department_id: int
    department: Optional[MasterResponse] = None


class MasterItem(BaseSchema):
    id: int
    name: str


class DoctorMasterItem(MasterItem):
    department_id: int


class MastersResponse(BaseSchema):
    departments: List[MasterItem]
    doctors: List[DoctorMasterItem]
    waiting_areas: List[MasterItem]
    examinations: List[MasterItem]


# --- Schedule Schemas ---
class ScheduleCreate(BaseSchema):
    patient_id: int
    date: dt.date
    start_time: TimeOfDay
    end_time: Optional[TimeOfDay] = None
    department_id: int
    doctor_id: int
    waiting_area_id: int
    note: Optional[str] = None
    examination_ids: List[int] = Field(default_factory=list)


class ScheduleUpdate(BaseSchema):
    date: Optional[dt.date] = None
    start_time: Optional[TimeOfDay] = None
    end_time: Optional[TimeOfDay] = None
    department_id: Optional[int] = None
    doctor_id: Optional[int] = None
    waiting_area_id: Optional[int] = None
    note: Optional[str] = None
    status: Optional[ScheduleStatus] = None
    examination_ids: Optional[List[int]] = None


class ScheduleResponse(BaseSchema):
    id: int
    patient_id: int
    date: dt.date
    start_time: str
    end_time: Optional[str] = None
    department_id: int
    doctor_id: int
    waiting_area_id: int
    note: Optional[str] = None
    status: ScheduleStatus
    visited_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    patient: Optional[PatientResponse] = None
    department: Optional[MasterResponse] = None
    doctor: Optional[DoctorResponse] = None
    waiting_area: Optional[MasterResponse] = None
    examinations: List[MasterResponse] = Field(default_factory=list)


# --- Reception (kiosk) Schemas ---
class CheckinRequest(BaseSchema):
    patient_code: NonEmptyStr


class CheckinPatient(BaseSchema):
    id: int
    patient_code: str
    name: str
    name_kana: str


class CheckinSchedule(BaseSchema):
    id: int
    date: dt.date
    start_time: str
    end_time: Optional[str] = None
    department: str
    doctor: str
    waiting_area: str
    examinations: List[str]
    status: ScheduleStatus
    visited_at: Optional[dt.datetime] = None


class CheckinResponse(BaseSchema):
    patient: CheckinPatient
    schedule: Optional[CheckinSchedule] = None
    voice_text: str
    already_visited: bool = False
    processed_at: dt.datetime


# --- Auth Schemas ---
class LoginRequest(BaseSchema):
    username: NonEmptyStr
    password: str = Field(..., min_length=1)


class SessionUser(BaseSchema):
    id: int
    username: str


class SessionResponse(BaseSchema):
    authenticated: bool = True
    user: SessionUser


class PasswordChangeRequest(BaseSchema):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


# --- Voice Schemas ---
class VoiceSynthesizeRequest(BaseSchema):
    text: str
    speaker: Optional[int] = None
    speed_scale: Optional[float] = None
    volume_scale: Optional[float] = None
    pitch_scale: Optional[float] = None


class VoiceStatusResponse(BaseSchema):
    available: bool
    url: str


class HealthResponse(BaseSchema):
    status: str = "ok"
    version: str
