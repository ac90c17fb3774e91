"""
Derived patient fields, filled in right before a patient is saved.

- age:        whole years as of today, recomputed on every save
- patient_id: "P" + last 6 digits of the epoch-millisecond clock, set once on create
"""

import logging
import time
from datetime import date

from django.conf import settings

logger = logging.getLogger(__name__)


def calculate_age(date_of_birth: date, today: date) -> int:
    """Years elapsed, counting this year only once the birthday has passed."""
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def generate_patient_id(now_ms: int = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    prefix = getattr(settings, 'PATIENT_ID_PREFIX', 'P')
    return f"{prefix}{str(now_ms)[-6:]}"


def derive_patient_fields(patient, is_edit, today=None, now_ms=None):
    """
    Fill age and patient_id on a Patient in place and return it.

    A missing birth date leaves the stored age alone. An existing patient_id,
    whether loaded or typed in, is never replaced.
    """
    if patient.date_of_birth:
        today = today or date.today()
        patient.age = calculate_age(date.fromisoformat(patient.date_of_birth), today)

    if not is_edit and not patient.patient_id:
        patient.patient_id = generate_patient_id(now_ms)
        logger.info("[Deriver] generated patient_id=%s", patient.patient_id)

    return patient
