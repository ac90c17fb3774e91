"""
History Filter: one patient's prescriptions under three exclusive modes.

  all         every prescription of the patient
  date_range  visit date within [start, end], both inclusive
  older_than  visit date strictly before today minus N years

Each fetch replaces the displayed list outright. The list is only assigned
once a response has arrived, so a failed fetch leaves the previous list on
screen.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from django.conf import settings

from .exceptions import BaseAppException, FetchError, ValidationError
from .serializers import prescription_from_api, serialize_prescription

logger = logging.getLogger(__name__)

MODE_ALL = 'all'
MODE_DATE_RANGE = 'date_range'
MODE_OLDER_THAN = 'older_than'


def years_before(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return today.replace(year=today.year - years, day=28)


@dataclass
class HistoryFilter:
    patient_pk: int
    start_date: str = ''
    end_date: str = ''
    mode: str = MODE_ALL
    prescriptions: list = field(default_factory=list)

    def _fetch(self, call, failure_message):
        try:
            return call()
        except BaseAppException as exc:
            logger.warning("[History] patient=%s %s: %s", self.patient_pk, failure_message, exc.message)
            raise FetchError(message=failure_message, detail={'reason': exc.message}) from exc

    def load_all(self, client):
        result = self._fetch(
            lambda: client.list_prescriptions_by_patient(self.patient_pk),
            'Failed to load patient history',
        )
        self.prescriptions = result
        self.mode = MODE_ALL
        return result

    def apply_date_range(self, client, start_date, end_date):
        if not start_date or not end_date:
            raise ValidationError(
                message='Please select both start and end dates',
                code='DATE_RANGE_REQUIRED',
            )
        try:
            start, end = date.fromisoformat(start_date), date.fromisoformat(end_date)
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                message='Dates must be in YYYY-MM-DD format',
                code='INVALID_DATE',
                detail={'start_date': start_date, 'end_date': end_date},
            ) from exc
        if start > end:
            raise ValidationError(
                message='Start date must not be after end date',
                code='INVALID_DATE_RANGE',
                detail={'start_date': start_date, 'end_date': end_date},
            )

        start_date, end_date = start.isoformat(), end.isoformat()
        self.start_date, self.end_date = start_date, end_date
        result = self._fetch(
            lambda: client.search_prescriptions_by_date_range(self.patient_pk, start_date, end_date),
            'Failed to filter by date range',
        )
        self.prescriptions = result
        self.mode = MODE_DATE_RANGE
        logger.info("[History] patient=%s date range %s..%s -> %d", self.patient_pk,
                    start_date, end_date, len(result))
        return result

    def load_older_than(self, client, years=None, today=None):
        if years is None:
            years = getattr(settings, 'HISTORY_OLDER_THAN_YEARS', 2)
        cutoff = years_before(today or date.today(), years).isoformat()

        result = self._fetch(
            lambda: client.list_prescriptions_older_than(self.patient_pk, years),
            f'Failed to load prescriptions older than {years} years',
        )
        # strictly older, whatever the backend does at the boundary
        result = [p for p in result if p.visit_date and p.visit_date < cutoff]
        self.prescriptions = result
        self.mode = MODE_OLDER_THAN
        logger.info("[History] patient=%s older than %s -> %d", self.patient_pk, cutoff, len(result))
        return result

    def clear(self, client):
        self.start_date = ''
        self.end_date = ''
        result = self._fetch(
            lambda: client.list_prescriptions_by_patient(self.patient_pk),
            'Failed to clear filters',
        )
        self.prescriptions = result
        self.mode = MODE_ALL
        return result

    # ── session state ──────────────────────────────────────────────────────

    def to_state(self):
        return {
            'patient_pk': self.patient_pk,
            'start_date': self.start_date,
            'end_date': self.end_date,
            'mode': self.mode,
            'prescriptions': [serialize_prescription(p) for p in self.prescriptions],
        }

    @classmethod
    def from_state(cls, state):
        return cls(
            patient_pk=state['patient_pk'],
            start_date=state.get('start_date', ''),
            end_date=state.get('end_date', ''),
            mode=state.get('mode', MODE_ALL),
            prescriptions=[prescription_from_api(p) for p in state.get('prescriptions', [])],
        )
