import datetime
from typing import List, Literal, Optional, Type

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    create_model,
    field_validator,
)

from db import BLOOD_MARKERS, CATEGORIES
from tools import WeightCsv

Category = Literal[CATEGORIES]  # type: ignore[valid-type]
BodyPart = Literal[
    "front", "back", "side", "arms", "legs", "abs", "chest", "shoulders", "face"
]
Mood = Literal[
    "happy",
    "sad",
    "excited",
    "frustrated",
    "grateful",
    "motivated",
    "contemplative",
    "neutral",
]
AuditAction = Literal["create", "update", "delete"]
AuditSource = Literal["manual", "csv"]


class ExerciseCreate(BaseModel):
    name: str = Field(min_length=1)
    category: Category
    weight: float = 0
    reps: int = 0
    duration: str = ""
    distance: str = ""
    pace: str = ""
    calories: int = 0
    rpe: int = 0
    notes: str = ""


class ExerciseUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[Category] = None
    weight: Optional[float] = None
    reps: Optional[int] = None
    duration: Optional[str] = None
    distance: Optional[str] = None
    pace: Optional[str] = None
    calories: Optional[int] = None
    rpe: Optional[int] = None
    notes: Optional[str] = None


class WorkoutLogCreate(BaseModel):
    category: Category
    completed_at: Optional[datetime.datetime] = None


class WeightEntryCreate(BaseModel):
    date: datetime.date
    time: Optional[str] = None
    weight: float
    body_fat: Optional[float] = None
    fat_free_mass: Optional[float] = None
    muscle_mass: Optional[float] = None
    bmi: Optional[float] = None
    subcutaneous_fat: Optional[float] = None
    skeletal_muscle: Optional[float] = None
    body_water: Optional[float] = None
    visceral_fat: Optional[int] = None
    bone_mass: Optional[float] = None
    protein: Optional[float] = None
    bmr: Optional[int] = None
    metabolic_age: Optional[int] = None
    body_type: Optional[str] = None
    notes: str = ""


class WeightEntryUpdate(BaseModel):
    date: Optional[datetime.date] = None
    time: Optional[str] = None
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    fat_free_mass: Optional[float] = None
    muscle_mass: Optional[float] = None
    bmi: Optional[float] = None
    subcutaneous_fat: Optional[float] = None
    skeletal_muscle: Optional[float] = None
    body_water: Optional[float] = None
    visceral_fat: Optional[int] = None
    bone_mass: Optional[float] = None
    protein: Optional[float] = None
    bmr: Optional[int] = None
    metabolic_age: Optional[int] = None
    body_type: Optional[str] = None
    notes: Optional[str] = None


class _BloodEntryBase(BaseModel):
    as_of: datetime.date
    source: str = Field(min_length=1)
    notes: str = ""


class _BloodEntryPatchBase(BaseModel):
    as_of: Optional[datetime.date] = None
    source: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None


_marker_fields: dict = {}
for _marker, _unit in BLOOD_MARKERS:
    _marker_fields[_marker] = (Optional[float], None)
    _marker_fields[f"{_marker}_unit"] = (Optional[str], None)

BloodEntryCreate = create_model(
    "BloodEntryCreate", __base__=_BloodEntryBase, **_marker_fields
)
BloodEntryUpdate = create_model(
    "BloodEntryUpdate", __base__=_BloodEntryPatchBase, **_marker_fields
)


class OptimalRangePayload(BaseModel):
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    unit: Optional[str] = None


class PhotoCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    photo_url: str = Field(min_length=1)
    body_part: Optional[BodyPart] = None
    weight: Optional[float] = None
    taken_at: datetime.datetime


class PhotoUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, min_length=1)
    body_part: Optional[BodyPart] = None
    weight: Optional[float] = None
    taken_at: Optional[datetime.datetime] = None


class ThoughtCreate(BaseModel):
    content: str = Field(min_length=1)
    mood: Mood = "neutral"
    tags: List[str] = Field(default_factory=list)


class ThoughtUpdate(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1)
    mood: Optional[Mood] = None
    tags: Optional[List[str]] = None


class AttachmentCreate(BaseModel):
    file_name: str = Field(min_length=1)
    file_url: str = Field(min_length=1)
    file_type: str = Field(min_length=1)
    file_size: int = Field(gt=0)


class AttachmentRemove(BaseModel):
    file_url: str = Field(min_length=1)


class StepEntryCreate(BaseModel):
    date: datetime.date
    steps: int
    distance: Optional[float] = None
    floors_ascended: Optional[int] = None
    notes: str = ""


class StepEntryUpdate(BaseModel):
    date: Optional[datetime.date] = None
    steps: Optional[int] = None
    distance: Optional[float] = None
    floors_ascended: Optional[int] = None
    notes: Optional[str] = None


class BodyMeasurementCreate(BaseModel):
    date: datetime.date
    waist: Optional[float] = None
    chest: Optional[float] = None
    hips: Optional[float] = None
    arms: Optional[float] = None
    thighs: Optional[float] = None
    neck: Optional[float] = None
    notes: str = ""


class BodyMeasurementUpdate(BaseModel):
    date: Optional[datetime.date] = None
    waist: Optional[float] = None
    chest: Optional[float] = None
    hips: Optional[float] = None
    arms: Optional[float] = None
    thighs: Optional[float] = None
    neck: Optional[float] = None
    notes: Optional[str] = None


class QuoteCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(min_length=1)
    author: str = Field(default="Unknown", min_length=1)
    category: str = "motivational"
    is_active: bool = True


class QuoteUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    is_active: Optional[bool] = None


class QuoteImport(BaseModel):
    quotes: List[QuoteCreate]


class ExerciseTemplateCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    category: Optional[Category] = None
    notes: str = ""


class ExerciseTemplateUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[Category] = None
    notes: Optional[str] = None


class TemplateNamePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)


class SetProgressPayload(BaseModel):
    sets_completed: int


class WorkoutStatusPayload(BaseModel):
    is_completed: StrictBool


class UserSettingsPayload(BaseModel):
    current_body_weight: Optional[float] = None


class _RecordValues(BaseModel):
    @field_validator("weight", "reps", "time", mode="before", check_fields=False)
    @classmethod
    def _as_text(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)


class PersonalRecordCreate(_RecordValues):
    exercise: str = Field(min_length=1)
    category: str = Field(min_length=1)
    weight: str = ""
    reps: str = ""
    time: str = ""


class PersonalRecordUpdate(_RecordValues):
    exercise: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    weight: Optional[str] = None
    reps: Optional[str] = None
    time: Optional[str] = None


class ReorderItem(BaseModel):
    id: str
    position: int


class ReorderPayload(BaseModel):
    order: List[ReorderItem]


class ChangesAuditCreate(BaseModel):
    exercise_name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    previous_weight: Optional[float] = None
    new_weight: Optional[float] = None
    percentage_change: Optional[float] = None


class PRChangesAuditCreate(BaseModel):
    record_id: Optional[str] = None
    exercise_name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    field_name: Literal["weight", "reps", "time"]
    previous_value: Optional[str] = None
    new_value: Optional[str] = None
    percentage_change: Optional[float] = None


class WeightAuditCreate(BaseModel):
    entry_id: Optional[str] = None
    action: AuditAction
    source: AuditSource = "manual"
    field_name: Literal["weight", "body_fat", "muscle_mass", "bmi"]
    previous_value: Optional[float] = None
    new_value: Optional[float] = None
    percentage_change: Optional[float] = None


class LapPayload(BaseModel):
    lap_id: Optional[int] = None
    lap_time: Optional[str] = None
    lap_time_ms: int = Field(ge=0)
    started_at_ms: int = 0


class TimerPayload(BaseModel):
    is_running: bool = False
    session_start_epoch_ms: int = 0
    lap_start_epoch_ms: int = 0
    elapsed_before_start_ms: int = 0
    lap_elapsed_before_start_ms: int = 0
    date_key: Optional[str] = None
    auto_reset_daily: bool = True
    lap_times: Optional[List[LapPayload]] = None


class NavigationSettingUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    route: Optional[str] = None
    is_visible: Optional[bool] = None
    position: Optional[int] = None


class WorkoutNotePayload(BaseModel):
    notes: str = ""


class LoginPayload(BaseModel):
    password: str


class SessionPayload(BaseModel):
    is_authenticated: bool = False
    timestamp: float = 0


class SetAclPayload(BaseModel):
    photo_url: str = Field(min_length=1)


def validate_payload(
    model: Type[BaseModel], data, exclude_unset: bool = True
) -> dict:
    """Validate ``data`` against ``model`` and return JSON-ready values.

    Raises ``ValueError`` carrying the pydantic error text.
    """
    if data is None:
        data = {}
    try:
        obj = model.model_validate(data)
    except ValidationError as e:
        raise ValueError(str(e))
    return obj.model_dump(exclude_unset=exclude_unset, mode="json")


def validate_weight_csv(text: str) -> List[dict]:
    """Parse and validate every CSV row before anything is stored.

    Any failure is reported as the single generic CSV error.
    """
    try:
        return [validate_payload(WeightEntryCreate, p) for p in WeightCsv.parse(text)]
    except ValueError:
        raise ValueError(WeightCsv.ERROR)
