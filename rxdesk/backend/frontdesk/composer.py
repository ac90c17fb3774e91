"""
Prescription Composer.

A local staging area for one prescription: header fields, the ordered item
list and the item currently being typed in. Nothing reaches the backend
until submit(), which sends the whole prescription in one create or update.

Between requests the draft lives in the session as to_state() output.
"""

import logging
import re
from dataclasses import asdict
from datetime import date

from .exceptions import BaseAppException, SaveError, ValidationError
from .serializers import medicine_from_api, medicine_to_api, prescription_to_api
from .types import PendingItem, Prescription, PrescriptionItem

logger = logging.getLogger(__name__)

_PENDING_FIELDS = ('dosage', 'frequency', 'duration')
_HEADER_FIELDS = ('patient_id', 'visit_date', 'notes')

LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_leading_int(value):
    """Integer at the start of free text: '5 days' -> 5, '7' -> 7, 'five' -> None."""
    match = LEADING_INT_RE.match(value or '')
    return int(match.group(1)) if match else None


class PrescriptionComposer:

    def __init__(self, medicines=None, prescription_pk=None, patient_id=None,
                 visit_date=None, notes='', items=None):
        self.medicines = list(medicines or [])      # catalog snapshot
        self.prescription_pk = prescription_pk      # set when editing
        self.patient_id = patient_id
        self.visit_date = visit_date if visit_date is not None else date.today().isoformat()
        self.notes = notes
        self.items = list(items or [])
        self.pending = PendingItem()

    @classmethod
    def for_edit(cls, prescription, medicines):
        return cls(
            medicines=medicines,
            prescription_pk=prescription.id,
            patient_id=prescription.patient_id,
            visit_date=prescription.visit_date,
            notes=prescription.notes or '',
            items=prescription.items,
        )

    @property
    def is_edit(self):
        return self.prescription_pk is not None

    def active_medicines(self):
        """Default choices for a new item. Inactive medicines are still found by select_medicine()."""
        return [m for m in self.medicines if m.is_active]

    # ── pending item ───────────────────────────────────────────────────────

    def select_medicine(self, medicine_id):
        """
        Set the pending medicine and copy its display name from the catalog.

        The catalog is a snapshot and may be stale, so an unknown id just
        leaves the name empty.
        """
        medicine = next(
            (m for m in self.medicines if str(m.id) == str(medicine_id)), None,
        )
        self.pending.medicine_id = '' if medicine_id is None else str(medicine_id)
        self.pending.medicine_name = medicine.name if medicine else ''

    def update_pending(self, **fields):
        if 'medicine_id' in fields:
            self.select_medicine(fields.pop('medicine_id'))
        for name in _PENDING_FIELDS:
            if name in fields:
                setattr(self.pending, name, '' if fields[name] is None else str(fields[name]))

    def update_header(self, **fields):
        for name in _HEADER_FIELDS:
            if name in fields:
                setattr(self, name, fields[name])

    # ── items ──────────────────────────────────────────────────────────────

    def add_item(self):
        pending = self.pending
        if not (pending.medicine_id and pending.dosage and pending.frequency and pending.duration):
            raise ValidationError(
                message='Please select a medicine and fill dosage, frequency, and duration',
                code='INCOMPLETE_ITEM',
            )

        medicine_id = parse_leading_int(pending.medicine_id)
        duration = parse_leading_int(pending.duration)
        if medicine_id is None or duration is None:
            raise ValidationError(
                message='Medicine and duration must be whole numbers',
                code='INVALID_NUMBER',
                detail={'medicine_id': pending.medicine_id, 'duration': pending.duration},
            )

        self.items.append(PrescriptionItem(
            medicine_id=medicine_id,
            medicine_name=pending.medicine_name,
            dosage=pending.dosage,
            frequency=pending.frequency,
            duration=duration,
        ))
        self.pending = PendingItem()
        logger.info("[Composer] item added, %d item(s) staged", len(self.items))

    def remove_item(self, index):
        if 0 <= index < len(self.items):
            del self.items[index]

    # ── submit ─────────────────────────────────────────────────────────────

    def build(self):
        return Prescription(
            id=self.prescription_pk,
            patient_id=self.patient_id,
            visit_date=self.visit_date,
            notes=self.notes,
            items=list(self.items),
        )

    def submit(self, client):
        """
        Send the staged prescription. Returns the saved record.

        On failure the draft is left exactly as it was so the user can retry.
        """
        if not self.patient_id:
            raise ValidationError(message='Please select a patient', code='PATIENT_REQUIRED')

        payload = prescription_to_api(self.build())
        try:
            if self.is_edit:
                saved = client.update_prescription(self.prescription_pk, payload)
            else:
                saved = client.create_prescription(payload)
        except BaseAppException as exc:
            logger.warning("[Composer] submit failed: %s", exc.message)
            raise SaveError(
                message='Failed to save prescription',
                detail={'reason': exc.message},
            ) from exc

        logger.info("[Composer] prescription saved, id=%s", saved.id)
        return saved

    # ── session state ──────────────────────────────────────────────────────

    def to_state(self):
        return {
            'prescription_pk': self.prescription_pk,
            'patient_id': self.patient_id,
            'visit_date': self.visit_date,
            'notes': self.notes,
            'items': [asdict(i) for i in self.items],
            'pending': asdict(self.pending),
            'medicines': [medicine_to_api(m) for m in self.medicines],
        }

    @classmethod
    def from_state(cls, state):
        composer = cls(
            medicines=[medicine_from_api(m) for m in state.get('medicines', [])],
            prescription_pk=state.get('prescription_pk'),
            patient_id=state.get('patient_id'),
            visit_date=state.get('visit_date', ''),
            notes=state.get('notes', ''),
            items=[PrescriptionItem(**i) for i in state.get('items', [])],
        )
        composer.pending = PendingItem(**state.get('pending', {}))
        return composer
