import logging
import os
from contextlib import contextmanager
from typing import List, Dict, Optional, Union
from fastapi import (
    FastAPI,
    HTTPException,
    Response,
    Body,
    APIRouter,
    Request,
)
from db import (
    CATEGORIES,
    ExerciseRepository,
    WorkoutLogRepository,
    WeightEntryRepository,
    BloodEntryRepository,
    BloodOptimalRangeRepository,
    PhotoProgressRepository,
    ThoughtRepository,
    AsyncThoughtRepository,
    PersonalRecordRepository,
    ChangesAuditRepository,
    PRChangesAuditRepository,
    WeightAuditRepository,
    TimerRepository,
    TabSettingsRepository,
    ShortcutSettingsRepository,
    WorkoutNotesRepository,
    SettingsRepository,
    StepEntryRepository,
    BodyMeasurementRepository,
    QuoteRepository,
    ExerciseTemplateRepository,
    DailySetProgressRepository,
    DailyWorkoutStatusRepository,
    UserSettingsRepository,
)
from schemas import (
    validate_payload,
    validate_weight_csv,
    ExerciseCreate,
    ExerciseUpdate,
    WorkoutLogCreate,
    WeightEntryCreate,
    WeightEntryUpdate,
    BloodEntryCreate,
    BloodEntryUpdate,
    OptimalRangePayload,
    PhotoCreate,
    PhotoUpdate,
    ThoughtCreate,
    ThoughtUpdate,
    PersonalRecordCreate,
    PersonalRecordUpdate,
    ReorderPayload,
    ChangesAuditCreate,
    PRChangesAuditCreate,
    WeightAuditCreate,
    LapPayload,
    TimerPayload,
    NavigationSettingUpdate,
    WorkoutNotePayload,
    LoginPayload,
    SessionPayload,
    SetAclPayload,
    AttachmentCreate,
    AttachmentRemove,
    StepEntryCreate,
    StepEntryUpdate,
    BodyMeasurementCreate,
    BodyMeasurementUpdate,
    QuoteCreate,
    QuoteUpdate,
    QuoteImport,
    ExerciseTemplateCreate,
    ExerciseTemplateUpdate,
    TemplateNamePayload,
    SetProgressPayload,
    WorkoutStatusPayload,
    UserSettingsPayload,
)
from audit_service import AuditService
from auth import PasswordGate
from config import APP_VERSION, configure_logging
from object_storage import ObjectStorage
from stats_service import StatisticsService
from tools import MathTools, TimeFormatter, WeightCsv

logger = logging.getLogger(__name__)


class FitnessAPI:
    """Provides REST endpoints for the fitness tracker."""

    def __init__(
        self,
        db_path: str = "fitness.db",
        yaml_path: str = "settings.yaml",
        *,
        upload_dir: Optional[str] = None,
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        configure_logging(self.settings.get_text("log_level", "INFO"))
        self.exercises = ExerciseRepository(db_path)
        self.workout_logs = WorkoutLogRepository(db_path)
        self.weight_entries = WeightEntryRepository(db_path)
        self.blood_entries = BloodEntryRepository(db_path)
        self.optimal_ranges = BloodOptimalRangeRepository(db_path)
        self.photos = PhotoProgressRepository(db_path)
        self.thoughts = ThoughtRepository(db_path)
        self.async_thoughts = AsyncThoughtRepository(db_path)
        self.personal_records = PersonalRecordRepository(db_path)
        self.changes_audit = ChangesAuditRepository(db_path)
        self.pr_changes_audit = PRChangesAuditRepository(db_path)
        self.weight_audit = WeightAuditRepository(db_path)
        self.timers = TimerRepository(db_path)
        self.tab_settings = TabSettingsRepository(db_path)
        self.workout_notes = WorkoutNotesRepository(db_path)
        self.shortcut_settings = ShortcutSettingsRepository(db_path)
        self.step_entries = StepEntryRepository(db_path)
        self.body_measurements = BodyMeasurementRepository(db_path)
        self.quotes = QuoteRepository(db_path)
        self.exercise_templates = ExerciseTemplateRepository(db_path)
        self.set_progress = DailySetProgressRepository(db_path)
        self.workout_status = DailyWorkoutStatusRepository(db_path)
        self.user_settings = UserSettingsRepository(db_path)
        self.audit = AuditService(
            self.changes_audit,
            self.pr_changes_audit,
            self.weight_audit,
        )
        self.statistics = StatisticsService(self.weight_entries, self.workout_logs)
        self.gate = PasswordGate(self.settings)
        self.storage = ObjectStorage(
            upload_dir or self.settings.get_text("upload_dir", "uploads")
        )
        self.app = FastAPI(
            title="Fitness Tracker API",
            description="REST API for workouts, body composition, labs and journaling",
            version=APP_VERSION,
        )
        self._setup_routes()

    @staticmethod
    @contextmanager
    def _errors(action: str):
        """Map repository and validation errors onto HTTP responses."""
        try:
            yield
        except HTTPException:
            raise
        except ValueError as e:
            msg = str(e)
            if msg.endswith("not found"):
                code = 404
            elif msg.endswith("already exists"):
                code = 409
            else:
                code = 400
            raise HTTPException(status_code=code, detail=msg)
        except Exception:
            logger.exception("failed to %s", action)
            raise HTTPException(status_code=500, detail=f"Failed to {action}")

    @staticmethod
    def _check_category(category: str) -> None:
        if category not in CATEGORIES:
            raise HTTPException(status_code=400, detail="invalid category")

    @staticmethod
    def _day(date: Optional[str]) -> str:
        return date or TimeFormatter.date_key()

    def _timer_with_laps(self, storage_key: str) -> dict:
        timer = self.timers.fetch_required(storage_key)
        timer["lap_times"] = self.timers.fetch_laps(timer["id"])
        return timer

    def _import_weight_csv(self, text: str) -> List[dict]:
        entries = validate_weight_csv(text)
        created = []
        for payload in entries:
            row = self.weight_entries.create(payload)
            self.audit.record_weight_create(row, source="csv")
            created.append(row)
        logger.info("imported %d weight entries from CSV", len(created))
        return created

    def _register_audit_routes(
        self, router: APIRouter, repo, model, action: str
    ) -> None:
        @router.get("")
        def list_audit(category: str = None):
            return repo.fetch_entries(category)

        @router.post("", status_code=201)
        def create_audit(payload: Dict = Body(...)):
            with self._errors(f"create {action}"):
                data = validate_payload(model, payload)
                if data.get("percentage_change") is None:
                    prev_key = "previous_weight" if "previous_weight" in repo.columns else "previous_value"
                    new_key = "new_weight" if "new_weight" in repo.columns else "new_value"
                    data["percentage_change"] = MathTools.percentage_change(
                        data.get(prev_key), data.get(new_key)
                    )
                return repo.create(data)

        @router.delete("/{entry_id}")
        def delete_audit(entry_id: str):
            with self._errors(f"delete {action}"):
                repo.delete(entry_id)
                return {"status": "deleted"}

    def _setup_routes(self) -> None:
        exercises_router = APIRouter(prefix="/api/exercises", tags=["Exercises"])
        logs_router = APIRouter(prefix="/api/workout-logs", tags=["Workout Logs"])
        weight_router = APIRouter(prefix="/api/weight-entries", tags=["Weight"])
        blood_router = APIRouter(prefix="/api/blood-entries", tags=["Blood"])
        ranges_router = APIRouter(
            prefix="/api/blood-optimal-ranges", tags=["Blood"]
        )
        photos_router = APIRouter(prefix="/api/photo-progress", tags=["Photos"])
        thoughts_router = APIRouter(prefix="/api/thoughts", tags=["Thoughts"])
        records_router = APIRouter(
            prefix="/api/personal-records", tags=["Personal Records"]
        )
        changes_router = APIRouter(prefix="/api/changes-audit", tags=["Audit"])
        pr_changes_router = APIRouter(prefix="/api/pr-changes-audit", tags=["Audit"])
        weight_audit_router = APIRouter(prefix="/api/weight-audit", tags=["Audit"])
        timers_router = APIRouter(prefix="/api/timers", tags=["Timers"])
        tabs_router = APIRouter(prefix="/api/tab-settings", tags=["Tabs"])
        notes_router = APIRouter(prefix="/api/workout-notes", tags=["Notes"])
        objects_router = APIRouter(prefix="/api/objects", tags=["Objects"])
        auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])
        steps_router = APIRouter(prefix="/api/step-entries", tags=["Steps"])
        measurements_router = APIRouter(
            prefix="/api/body-measurements", tags=["Body Measurements"]
        )
        quotes_router = APIRouter(prefix="/api/quotes", tags=["Quotes"])
        templates_router = APIRouter(
            prefix="/api/exercise-templates", tags=["Exercise Templates"]
        )
        progress_router = APIRouter(
            prefix="/api/daily-set-progress", tags=["Daily Progress"]
        )
        status_router = APIRouter(
            prefix="/api/daily-workout-status", tags=["Daily Progress"]
        )
        user_settings_router = APIRouter(prefix="/api/user-settings", tags=["Settings"])
        shortcuts_router = APIRouter(prefix="/api/shortcut-settings", tags=["Tabs"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.tab_settings.fetch_all_entries()
                return {"status": "ok", "version": APP_VERSION}
            except Exception as e:  # pragma: no cover - connectivity failure
                logger.exception("health check failed")
                raise HTTPException(status_code=500, detail=str(e))

        # exercises

        @exercises_router.get("")
        def list_exercises(category: str = None):
            if category:
                self._check_category(category)
            return self.exercises.fetch_all_exercises(category)

        @exercises_router.get("/search")
        def search_exercises(query: str):
            return self.exercises.search(query)

        @exercises_router.get("/category/{category}")
        def exercises_by_category(category: str):
            self._check_category(category)
            return self.exercises.fetch_all_exercises(category)

        @exercises_router.get("/{exercise_id}")
        def get_exercise(exercise_id: str):
            with self._errors("fetch exercise"):
                return self.exercises.fetch_row(exercise_id)

        @exercises_router.post("", status_code=201)
        def create_exercise(payload: Dict = Body(...)):
            with self._errors("create exercise"):
                data = validate_payload(ExerciseCreate, payload)
                return self.exercises.create(data)

        @exercises_router.patch("/{exercise_id}")
        def update_exercise(exercise_id: str, payload: Dict = Body(...)):
            with self._errors("update exercise"):
                data = validate_payload(ExerciseUpdate, payload)
                before = self.exercises.fetch_row(exercise_id)
                after = self.exercises.update(exercise_id, data)
                if "weight" in data:
                    self.audit.record_exercise_update(before, after)
                return after

        @exercises_router.delete("/{exercise_id}")
        def delete_exercise(exercise_id: str):
            with self._errors("delete exercise"):
                self.exercises.delete(exercise_id)
                return {"status": "deleted"}

        # workout logs

        @logs_router.get("")
        def list_workout_logs():
            return self.workout_logs.fetch_rows()

        @logs_router.get("/latest")
        def latest_workout_log():
            return self.workout_logs.fetch_latest()

        @logs_router.get("/frequency")
        def workout_frequency(days: int = 30):
            return self.statistics.workout_frequency(days)

        @logs_router.post("", status_code=201)
        def create_workout_log(payload: Dict = Body(...)):
            with self._errors("create workout log"):
                data = validate_payload(WorkoutLogCreate, payload)
                return self.workout_logs.log(data["category"], data.get("completed_at"))

        @logs_router.delete("/{log_id}")
        def delete_workout_log(log_id: str):
            with self._errors("delete workout log"):
                self.workout_logs.delete(log_id)
                return {"status": "deleted"}

        # weight entries

        @weight_router.get("")
        def list_weight_entries():
            return self.weight_entries.fetch_history()

        @weight_router.get("/range")
        def weight_entries_range(start_date: str, end_date: str):
            return self.weight_entries.fetch_history(start_date, end_date)

        @weight_router.get("/stats")
        def weight_stats(start_date: str = None, end_date: str = None):
            with self._errors("compute weight stats"):
                return self.statistics.weight_stats(start_date, end_date)

        @weight_router.get("/trend")
        def weight_trend(start_date: str = None, end_date: str = None, window: int = 7):
            with self._errors("compute weight trend"):
                return self.statistics.weight_trend(start_date, end_date, window)

        @weight_router.get("/export_csv")
        def export_weight_csv(start_date: str = None, end_date: str = None):
            rows = self.weight_entries.fetch_history(start_date, end_date)
            return Response(
                content=WeightCsv.export(rows),
                media_type="text/csv",
                headers={"Content-Disposition": "attachment; filename=weight_entries.csv"},
            )

        @weight_router.post("/import_csv")
        async def import_weight_csv(request: Request):
            raw = await request.body()
            try:
                text = raw.decode("utf-8-sig")
            except UnicodeDecodeError:
                raise HTTPException(status_code=400, detail=WeightCsv.ERROR)
            with self._errors("import weight entries"):
                created = self._import_weight_csv(text)
                return {"imported": len(created), "entries": created}

        @weight_router.get("/{entry_id}")
        def get_weight_entry(entry_id: str):
            with self._errors("fetch weight entry"):
                return self.weight_entries.fetch_row(entry_id)

        @weight_router.post("", status_code=201)
        def create_weight_entry(payload: Dict = Body(...)):
            with self._errors("create weight entry"):
                data = validate_payload(WeightEntryCreate, payload)
                row = self.weight_entries.create(data)
                self.audit.record_weight_create(row)
                return row

        @weight_router.patch("/{entry_id}")
        def update_weight_entry(entry_id: str, payload: Dict = Body(...)):
            with self._errors("update weight entry"):
                data = validate_payload(WeightEntryUpdate, payload)
                before = self.weight_entries.fetch_row(entry_id)
                after = self.weight_entries.update(entry_id, data)
                self.audit.record_weight_update(before, after)
                return after

        @weight_router.delete("/{entry_id}")
        def delete_weight_entry(entry_id: str):
            with self._errors("delete weight entry"):
                before = self.weight_entries.fetch_row(entry_id)
                self.weight_entries.delete(entry_id)
                self.audit.record_weight_delete(before)
                return {"status": "deleted"}

        # blood entries

        @blood_router.get("")
        def list_blood_entries():
            return self.blood_entries.fetch_rows()

        @blood_router.get("/{entry_id}")
        def get_blood_entry(entry_id: str):
            with self._errors("fetch blood entry"):
                return self.blood_entries.fetch_row(entry_id)

        @blood_router.post("", status_code=201)
        def create_blood_entry(payload: Dict = Body(...)):
            with self._errors("create blood entry"):
                data = validate_payload(BloodEntryCreate, payload)
                return self.blood_entries.create(data)

        @blood_router.patch("/{entry_id}")
        def update_blood_entry(entry_id: str, payload: Dict = Body(...)):
            with self._errors("update blood entry"):
                data = validate_payload(BloodEntryUpdate, payload)
                return self.blood_entries.update(entry_id, data)

        @blood_router.delete("/{entry_id}")
        def delete_blood_entry(entry_id: str):
            with self._errors("delete blood entry"):
                self.blood_entries.delete(entry_id)
                return {"status": "deleted"}

        @blood_router.post("/{entry_id}/attachments")
        def add_blood_attachment(entry_id: str, payload: Dict = Body(...)):
            with self._errors("add attachment"):
                data = validate_payload(AttachmentCreate, payload, exclude_unset=False)
                return self.blood_entries.add_attachment(entry_id, data)

        @blood_router.delete("/{entry_id}/attachments")
        def remove_blood_attachment(entry_id: str, payload: Dict = Body(...)):
            with self._errors("remove attachment"):
                data = validate_payload(AttachmentRemove, payload)
                return self.blood_entries.remove_attachment(entry_id, data["file_url"])

        @ranges_router.get("")
        def list_optimal_ranges():
            return self.optimal_ranges.fetch_rows()

        @ranges_router.get("/{marker_key}")
        def get_optimal_range(marker_key: str):
            with self._errors("fetch optimal range"):
                return self.optimal_ranges.fetch_row(marker_key)

        @ranges_router.put("/{marker_key}")
        def put_optimal_range(marker_key: str, payload: Dict = Body(...)):
            with self._errors("save optimal range"):
                data = validate_payload(OptimalRangePayload, payload)
                return self.optimal_ranges.upsert(marker_key, data)

        @ranges_router.delete("/{marker_key}")
        def delete_optimal_range(marker_key: str):
            with self._errors("delete optimal range"):
                self.optimal_ranges.delete(marker_key)
                return {"status": "deleted"}

        # photos

        @photos_router.get("")
        def list_photos(body_part: str = None):
            if body_part:
                return self.photos.fetch_by_body_part(body_part)
            return self.photos.fetch_rows()

        @photos_router.get("/body-part/{body_part}")
        def photos_by_body_part(body_part: str):
            return self.photos.fetch_by_body_part(body_part)

        @photos_router.get("/{photo_id}")
        def get_photo(photo_id: str):
            with self._errors("fetch photo"):
                return self.photos.fetch_row(photo_id)

        @photos_router.post("", status_code=201)
        def create_photo(payload: Dict = Body(...)):
            with self._errors("create photo"):
                data = validate_payload(PhotoCreate, payload)
                return self.photos.create(data)

        @photos_router.patch("/{photo_id}")
        def update_photo(photo_id: str, payload: Dict = Body(...)):
            with self._errors("update photo"):
                data = validate_payload(PhotoUpdate, payload)
                return self.photos.update(photo_id, data)

        @photos_router.delete("/{photo_id}")
        def delete_photo(photo_id: str):
            with self._errors("delete photo"):
                photo = self.photos.fetch_row(photo_id)
                self.photos.delete(photo_id)
                url = photo.get("photo_url") or ""
                if url.startswith(ObjectStorage.PREFIX):
                    try:
                        self.storage.delete(url)
                    except (OSError, ValueError):
                        logger.warning("could not remove stored object %s", url)
                return {"status": "deleted"}

        # thoughts

        @thoughts_router.get("")
        async def list_thoughts(mood: str = None):
            return await self.async_thoughts.fetch_thoughts(mood)

        @thoughts_router.get("/{thought_id}")
        async def get_thought(thought_id: str):
            with self._errors("fetch thought"):
                return await self.async_thoughts.fetch_detail(thought_id)

        @thoughts_router.post("", status_code=201)
        async def create_thought(payload: Dict = Body(...)):
            with self._errors("create thought"):
                data = validate_payload(ThoughtCreate, payload)
                return await self.async_thoughts.create(data)

        @thoughts_router.patch("/{thought_id}")
        async def update_thought(thought_id: str, payload: Dict = Body(...)):
            with self._errors("update thought"):
                data = validate_payload(ThoughtUpdate, payload)
                return await self.async_thoughts.update(thought_id, data)

        @thoughts_router.delete("/{thought_id}")
        async def delete_thought(thought_id: str):
            with self._errors("delete thought"):
                await self.async_thoughts.delete(thought_id)
                return {"status": "deleted"}

        # personal records

        @records_router.get("")
        def list_personal_records(category: str = None):
            if category:
                return self.personal_records.fetch_rows("category = ?", (category,))
            return self.personal_records.fetch_rows()

        @records_router.put("/reorder")
        def reorder_personal_records(payload: Union[List[Dict], Dict] = Body(...)):
            with self._errors("reorder personal records"):
                if isinstance(payload, list):
                    payload = {"order": payload}
                data = validate_payload(ReorderPayload, payload)
                for item in data["order"]:
                    if not self.personal_records.exists(item["id"]):
                        raise ValueError("personal record not found")
                self.personal_records.reorder(data["order"])
                return self.personal_records.fetch_rows()

        @records_router.post("", status_code=201)
        def create_personal_record(payload: Dict = Body(...)):
            with self._errors("create personal record"):
                data = validate_payload(PersonalRecordCreate, payload)
                row = self.personal_records.create(data)
                self.audit.record_pr_create(row)
                return row

        @records_router.patch("/{record_id}")
        def update_personal_record(record_id: str, payload: Dict = Body(...)):
            with self._errors("update personal record"):
                data = validate_payload(PersonalRecordUpdate, payload)
                before = self.personal_records.fetch_row(record_id)
                after = self.personal_records.update(record_id, data)
                self.audit.record_pr_update(before, after)
                return after

        @records_router.delete("/{record_id}")
        def delete_personal_record(record_id: str):
            with self._errors("delete personal record"):
                self.personal_records.delete(record_id)
                return {"status": "deleted"}

        # audit trails

        self._register_audit_routes(
            changes_router, self.changes_audit, ChangesAuditCreate, "changes audit entry"
        )
        self._register_audit_routes(
            pr_changes_router,
            self.pr_changes_audit,
            PRChangesAuditCreate,
            "PR changes audit entry",
        )
        self._register_audit_routes(
            weight_audit_router,
            self.weight_audit,
            WeightAuditCreate,
            "weight audit entry",
        )

        # timers

        @timers_router.get("/{storage_key}")
        def get_timer(storage_key: str):
            with self._errors("fetch timer"):
                return self._timer_with_laps(storage_key)

        @timers_router.put("/{storage_key}")
        def put_timer(storage_key: str, payload: Dict = Body(...)):
            with self._errors("save timer"):
                data = validate_payload(TimerPayload, payload)
                laps = data.pop("lap_times", None)
                timer = self.timers.upsert(storage_key, data)
                if laps is not None:
                    self.timers.replace_laps(timer["id"], laps)
                return self._timer_with_laps(storage_key)

        @timers_router.delete("/{storage_key}")
        def delete_timer(storage_key: str):
            with self._errors("delete timer"):
                self.timers.delete(storage_key)
                return {"status": "deleted"}

        @timers_router.get("/{storage_key}/laps")
        def list_laps(storage_key: str):
            with self._errors("fetch laps"):
                timer = self.timers.fetch_required(storage_key)
                return self.timers.fetch_laps(timer["id"])

        @timers_router.post("/{storage_key}/laps", status_code=201)
        def add_lap(storage_key: str, payload: Dict = Body(...)):
            with self._errors("add lap"):
                data = validate_payload(LapPayload, payload)
                timer = self.timers.fetch_required(storage_key)
                return self.timers.add_lap(
                    timer["id"],
                    data["lap_time_ms"],
                    data.get("started_at_ms", 0),
                    data.get("lap_id"),
                    data.get("lap_time"),
                )

        @timers_router.delete("/{storage_key}/laps")
        def clear_laps(storage_key: str):
            with self._errors("clear laps"):
                timer = self.timers.fetch_required(storage_key)
                self.timers.clear_laps(timer["id"])
                return {"status": "cleared"}

        @timers_router.delete("/{storage_key}/laps/{lap_id}")
        def delete_lap(storage_key: str, lap_id: int):
            with self._errors("delete lap"):
                timer = self.timers.fetch_required(storage_key)
                self.timers.delete_lap(timer["id"], lap_id)
                return {"status": "deleted"}

        # tabs and notes

        @tabs_router.get("")
        def list_tab_settings():
            return self.tab_settings.fetch_all_entries()

        @tabs_router.get("/visible")
        def visible_tab_settings():
            return self.tab_settings.fetch_visible()

        @tabs_router.patch("/{tab_key}")
        def update_tab_setting(tab_key: str, payload: Dict = Body(...)):
            with self._errors("update tab setting"):
                data = validate_payload(NavigationSettingUpdate, payload)
                return self.tab_settings.update(tab_key, data)

        @shortcuts_router.get("")
        def list_shortcut_settings():
            return self.shortcut_settings.fetch_all_entries()

        @shortcuts_router.get("/visible")
        def visible_shortcut_settings():
            return self.shortcut_settings.fetch_visible()

        @shortcuts_router.patch("/{shortcut_key}")
        def update_shortcut_setting(shortcut_key: str, payload: Dict = Body(...)):
            with self._errors("update shortcut setting"):
                data = validate_payload(NavigationSettingUpdate, payload)
                return self.shortcut_settings.update(shortcut_key, data)

        @notes_router.get("/{category}")
        def get_workout_notes(category: str, date: str = None):
            self._check_category(category)
            day = self._day(date)
            return {
                "category": category,
                "date": day,
                "notes": self.workout_notes.fetch_notes(category, day),
            }

        @notes_router.post("/{category}")
        def save_workout_notes(category: str, payload: Dict = Body(...), date: str = None):
            self._check_category(category)
            with self._errors("save workout notes"):
                data = validate_payload(WorkoutNotePayload, payload, exclude_unset=False)
                day = self._day(date)
                notes = self.workout_notes.save(category, day, data["notes"])
                return {"category": category, "date": day, "notes": notes}

        # object storage

        @objects_router.post("/upload")
        def request_upload(request: Request):
            with self._errors("get upload URL"):
                return self.storage.create_upload(str(request.base_url))

        @objects_router.put("/uploads/{object_id}")
        async def upload_object(object_id: str, request: Request):
            data = await request.body()
            with self._errors("store upload"):
                return {"object_path": self.storage.write(object_id, data)}

        @objects_router.put("/set-acl")
        def set_object_acl(payload: Dict = Body(...)):
            with self._errors("set photo ACL"):
                data = validate_payload(SetAclPayload, payload)
                return {"object_path": self.storage.normalize_path(data["photo_url"])}

        @self.app.get("/objects/uploads/{object_id}")
        def serve_object(object_id: str):
            with self._errors("serve object"):
                content, media_type = self.storage.read(object_id)
                return Response(content=content, media_type=media_type)

        # auth

        @auth_router.post("/login")
        def login(payload: Dict = Body(...)):
            with self._errors("log in"):
                data = validate_payload(LoginPayload, payload)
                session = self.gate.login(data["password"])
            if not session["is_authenticated"]:
                raise HTTPException(status_code=401, detail="Incorrect password")
            return session

        @auth_router.post("/check")
        def check_session(payload: Dict = Body(...)):
            with self._errors("check session"):
                data = validate_payload(SessionPayload, payload)
                return {"valid": self.gate.is_valid(data)}

        # steps and body measurements

        @steps_router.get("")
        def list_step_entries():
            return self.step_entries.fetch_history()

        @steps_router.get("/latest")
        def latest_step_entry():
            entry = self.step_entries.fetch_latest()
            if entry is None:
                raise HTTPException(status_code=404, detail="step entry not found")
            return entry

        @steps_router.get("/range")
        def step_entries_range(start_date: str, end_date: str):
            return self.step_entries.fetch_history(start_date, end_date)

        @steps_router.post("", status_code=201)
        def create_step_entry(payload: Dict = Body(...)):
            with self._errors("create step entry"):
                data = validate_payload(StepEntryCreate, payload)
                return self.step_entries.create(data)

        @steps_router.patch("/{entry_id}")
        def update_step_entry(entry_id: str, payload: Dict = Body(...)):
            with self._errors("update step entry"):
                data = validate_payload(StepEntryUpdate, payload)
                return self.step_entries.update(entry_id, data)

        @steps_router.delete("/{entry_id}")
        def delete_step_entry(entry_id: str):
            with self._errors("delete step entry"):
                self.step_entries.delete(entry_id)
                return {"status": "deleted"}

        @measurements_router.get("")
        def list_body_measurements():
            return self.body_measurements.fetch_history()

        @measurements_router.get("/latest")
        def latest_body_measurement():
            entry = self.body_measurements.fetch_latest()
            if entry is None:
                raise HTTPException(status_code=404, detail="body measurement not found")
            return entry

        @measurements_router.post("", status_code=201)
        def create_body_measurement(payload: Dict = Body(...)):
            with self._errors("create body measurement"):
                data = validate_payload(BodyMeasurementCreate, payload)
                return self.body_measurements.create(data)

        @measurements_router.patch("/{entry_id}")
        def update_body_measurement(entry_id: str, payload: Dict = Body(...)):
            with self._errors("update body measurement"):
                data = validate_payload(BodyMeasurementUpdate, payload)
                return self.body_measurements.update(entry_id, data)

        @measurements_router.delete("/{entry_id}")
        def delete_body_measurement(entry_id: str):
            with self._errors("delete body measurement"):
                self.body_measurements.delete(entry_id)
                return {"status": "deleted"}

        # quotes

        @quotes_router.get("")
        def list_quotes():
            return self.quotes.fetch_rows()

        @quotes_router.get("/active")
        def active_quotes():
            return self.quotes.fetch_active()

        @quotes_router.get("/random")
        def random_quote():
            with self._errors("fetch random quote"):
                return self.quotes.fetch_random()

        @quotes_router.post("/bulk-import")
        def bulk_import_quotes(payload: Dict = Body(...)):
            with self._errors("bulk import quotes"):
                data = validate_payload(QuoteImport, payload, exclude_unset=False)
                count = self.quotes.replace_all(data["quotes"])
                logger.info("replaced quotes with %d imported quotes", count)
                return {"imported": count}

        @quotes_router.post("", status_code=201)
        def create_quote(payload: Dict = Body(...)):
            with self._errors("create quote"):
                data = validate_payload(QuoteCreate, payload, exclude_unset=False)
                return self.quotes.create(data)

        @quotes_router.patch("/{quote_id}")
        def update_quote(quote_id: str, payload: Dict = Body(...)):
            with self._errors("update quote"):
                data = validate_payload(QuoteUpdate, payload)
                return self.quotes.update(quote_id, data)

        @quotes_router.delete("/{quote_id}")
        def delete_quote(quote_id: str):
            with self._errors("delete quote"):
                self.quotes.delete(quote_id)
                return {"status": "deleted"}

        # exercise templates

        @templates_router.get("")
        def list_exercise_templates():
            return self.exercise_templates.fetch_rows()

        @templates_router.post("/get-or-create")
        def get_or_create_template(payload: Dict = Body(...)):
            with self._errors("get or create exercise template"):
                data = validate_payload(TemplateNamePayload, payload)
                return self.exercise_templates.get_or_create(data["name"])

        @templates_router.post("", status_code=201)
        def create_exercise_template(payload: Dict = Body(...)):
            with self._errors("create exercise template"):
                data = validate_payload(ExerciseTemplateCreate, payload)
                return self.exercise_templates.create(data)

        @templates_router.patch("/{template_id}")
        def update_exercise_template(template_id: str, payload: Dict = Body(...)):
            with self._errors("update exercise template"):
                data = validate_payload(ExerciseTemplateUpdate, payload)
                return self.exercise_templates.update(template_id, data)

        @templates_router.delete("/{template_id}")
        def delete_exercise_template(template_id: str):
            with self._errors("delete exercise template"):
                self.exercise_templates.delete(template_id)
                return {"status": "deleted"}

        # daily progress

        @progress_router.post("/reset")
        def reset_set_progress():
            self.set_progress.reset()
            return {"status": "reset"}

        @progress_router.get("/{category}")
        def get_set_progress(category: str, date: str = None):
            self._check_category(category)
            return self.set_progress.fetch_for_category(category, self._day(date))

        @progress_router.post("/tap/{exercise_id}")
        def tap_set_progress(exercise_id: str, date: str = None):
            with self._errors("update set progress"):
                if not self.exercises.exists(exercise_id):
                    raise ValueError("exercise not found")
                return self.set_progress.tap(exercise_id, self._day(date))

        @progress_router.patch("/{exercise_id}")
        def update_set_progress(exercise_id: str, payload: Dict = Body(...), date: str = None):
            with self._errors("update set progress"):
                data = validate_payload(SetProgressPayload, payload)
                if not self.exercises.exists(exercise_id):
                    raise ValueError("exercise not found")
                return self.set_progress.save(
                    exercise_id, self._day(date), data["sets_completed"]
                )

        @status_router.post("/reset")
        def reset_workout_status():
            self.workout_status.reset()
            return {"status": "reset"}

        @status_router.get("/{category}")
        def get_workout_status(category: str, date: str = None):
            self._check_category(category)
            return {"is_completed": self.workout_status.fetch_status(category, self._day(date))}

        @status_router.post("/{category}")
        def set_workout_status(category: str, payload: Dict = Body(...), date: str = None):
            self._check_category(category)
            with self._errors("set daily workout status"):
                data = validate_payload(WorkoutStatusPayload, payload)
                done = self.workout_status.save(
                    category, self._day(date), data["is_completed"]
                )
                return {"is_completed": done}

        # user settings

        @user_settings_router.get("")
        def get_user_settings():
            return self.user_settings.fetch() or {"current_body_weight": None}

        @user_settings_router.post("")
        def save_user_settings(payload: Dict = Body(...)):
            with self._errors("save user settings"):
                data = validate_payload(UserSettingsPayload, payload)
                return self.user_settings.save(data)

        @user_settings_router.patch("/{settings_id}")
        def update_user_settings(settings_id: str, payload: Dict = Body(...)):
            with self._errors("update user settings"):
                data = validate_payload(UserSettingsPayload, payload)
                return self.user_settings.update(settings_id, data)

        # settings

        @self.app.get("/api/settings")
        def get_settings():
            return self.settings.all_settings()

        @self.app.patch("/api/settings")
        def update_settings(payload: Dict = Body(...)):
            with self._errors("update settings"):
                result = self.settings.update_many(payload)
                if "log_level" in payload:
                    configure_logging(result.get("log_level", "INFO"))
                return result

        for router in (
            exercises_router,
            logs_router,
            weight_router,
            blood_router,
            ranges_router,
            photos_router,
            thoughts_router,
            records_router,
            changes_router,
            pr_changes_router,
            weight_audit_router,
            timers_router,
            tabs_router,
            notes_router,
            objects_router,
            auth_router,
            steps_router,
            measurements_router,
            quotes_router,
            templates_router,
            progress_router,
            status_router,
            user_settings_router,
            shortcuts_router,
        ):
            self.app.include_router(router)


api = FitnessAPI(os.environ.get("DB_PATH", "fitness.db"))
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
