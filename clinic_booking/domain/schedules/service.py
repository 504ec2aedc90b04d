"""Schedule service - Business logic for templates and doctor slot assignment"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...database import transaction
from ...models import DoctorSlot, ScheduleTemplate
from ...shared.errors import ConflictError, NotFound, ValidationError
from ...shared.validators import format_hhmm
from .conflicts import find_conflicts
from .expander import expand_template, weekday_for
from .repository import ScheduleRepository
from .schemas import TemplateCreate, TemplateUpdate

logger = logging.getLogger(__name__)


class ScheduleService:
    """Service layer for schedule templates and their assignment to doctors"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def get_templates(self) -> list[ScheduleTemplate]:
        return self.repo.get_templates(self.db)

    def get_template(self, template_id: int) -> ScheduleTemplate:
        template = self.repo.get_template_by_id(self.db, template_id)
        if not template:
            raise NotFound("Schedule template not found")
        return template

    def count_templates(self) -> int:
        return self.repo.count_templates(self.db)

    def create_template(self, data: TemplateCreate) -> ScheduleTemplate:
        logger.info(f"🗓️ Creating schedule template '{data.name}' days={data.weekdays}")
        return self.repo.create_template(
            self.db,
            name=data.name,
            weekdays=data.weekdays,
            start_time=data.startTime,
            end_time=data.endTime,
        )

    def update_template(self, template_id: int, data: TemplateUpdate) -> ScheduleTemplate:
        """
        Replace a template's fields.

        Slots already expanded from it are left as they are; reassign the
        template to apply the new range to a doctor.
        """
        template = self.get_template(template_id)
        return self.repo.update_template(
            self.db,
            template,
            name=data.name,
            weekdays=data.weekdays,
            start_time=data.startTime,
            end_time=data.endTime,
        )

    def delete_template(self, template_id: int) -> dict:
        template = self.get_template(template_id)

        booked = self.repo.count_booked_slots(self.db, template.id)
        if booked:
            logger.warning(
                f"⚠️ Deleting template {template.id} removes {booked} booked slot(s)"
            )

        self.repo.delete_template(self.db, template)
        return {"message": "Schedule template deleted"}

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def _resolve_assignment(
        self, template_id: int, doctor_id: int, on_date: Optional[date]
    ) -> ScheduleTemplate:
        errors = {}
        template = self.repo.get_template_by_id(self.db, template_id)
        if not template:
            errors["templateId"] = "Schedule template does not exist"
        if not self.repo.get_doctor(self.db, doctor_id):
            errors["doctorId"] = "Doctor does not exist"
        if template and on_date and weekday_for(on_date) not in template.weekdays:
            errors["onDate"] = "Date does not fall on one of the template weekdays"
        if errors:
            raise ValidationError("Invalid assignment", errors)
        return template

    def check_conflicts(
        self, template_id: int, doctor_id: int, on_date: Optional[date] = None
    ) -> list[dict]:
        """Dry run: the conflicts assigning this template would hit"""
        template = self._resolve_assignment(template_id, doctor_id, on_date)
        return self._detect(template, doctor_id, on_date)

    def _detect(self, template: ScheduleTemplate, doctor_id: int, on_date: Optional[date]) -> list[dict]:
        weekdays = [weekday_for(on_date)] if on_date else list(template.weekdays)
        existing = self.repo.get_slots_on_weekdays(self.db, doctor_id, weekdays)
        return find_conflicts(template, existing, on_date=on_date)

    def assign(
        self, template_id: int, doctor_id: int, on_date: Optional[date] = None
    ) -> list[DoctorSlot]:
        """
        Expand a template into slots for a doctor.

        All or nothing: if any existing slot overlaps, ConflictError carries
        the full list and no slot is created.
        """
        template = self._resolve_assignment(template_id, doctor_id, on_date)
        logger.info(
            f"📥 Assigning template {template.id} to doctor {doctor_id}"
            + (f" on {on_date.isoformat()}" if on_date else "")
        )

        with transaction(self.db):
            self.repo.lock_doctor(self.db, doctor_id)

            conflicts = self._detect(template, doctor_id, on_date)
            if conflicts:
                logger.warning(
                    f"⚠️ Template {template.id} conflicts with {len(conflicts)} slot(s) of doctor {doctor_id}"
                )
                raise ConflictError(
                    "Schedule conflicts with slots already assigned to the doctor",
                    conflicts,
                )

            slots = self.repo.add_slots(self.db, expand_template(template, doctor_id, on_date))

        logger.info(f"✅ Created {len(slots)} slot(s) for doctor {doctor_id}")
        return slots

    def unassign(self, template_id: int, doctor_id: int, on_date: Optional[date] = None) -> dict:
        self._resolve_assignment(template_id, doctor_id, None)

        with transaction(self.db):
            deleted, booked = self.repo.delete_assignment(self.db, template_id, doctor_id, on_date)

        if booked:
            logger.warning(
                f"⚠️ Unassigning template {template_id} from doctor {doctor_id} removed {booked} booked slot(s)"
            )
        logger.info(f"🗑️ Removed {deleted} slot(s) of template {template_id} from doctor {doctor_id}")
        return {"message": "Schedule unassigned", "deletedCount": deleted}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_doctor_slots(self, doctor_id: int, template_id: Optional[int] = None) -> list[DoctorSlot]:
        if not self.repo.get_doctor(self.db, doctor_id):
            raise NotFound("Doctor not found")
        return self.repo.get_doctor_slots(self.db, doctor_id, template_id)

    def get_doctor_ranges(self, doctor_id: int) -> list[dict]:
        """Merge a doctor's recurring slots into contiguous ranges per weekday"""
        ranges: list[dict] = []
        for slot in self.get_doctor_slots(doctor_id):
            if slot.slot_date is not None:
                continue
            last = ranges[-1] if ranges else None
            if last and last["weekday"] == slot.weekday and last["end"] >= slot.start_time:
                last["end"] = max(last["end"], slot.end_time)
            else:
                ranges.append({"weekday": slot.weekday, "start": slot.start_time, "end": slot.end_time})

        return [
            {"weekday": r["weekday"], "startTime": format_hhmm(r["start"]), "endTime": format_hhmm(r["end"])}
            for r in ranges
        ]
