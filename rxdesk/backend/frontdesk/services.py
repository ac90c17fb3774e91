"""
Screen-level operations shared by the views.

Each function talks to the backend through a BackendClient, turns low-level
client errors into the screen's own message, and raises; views never catch.
"""

import logging
from datetime import date

from .catalogs import load_catalogs
from .composer import PrescriptionComposer
from .deriver import derive_patient_fields
from .exceptions import (
    BaseAppException,
    FetchError,
    NotFoundError,
    SaveError,
    ValidationError,
    WarningError,
)
from .serializers import (
    FieldValueError,
    medicine_from_api,
    medicine_to_api,
    patient_from_api,
    patient_to_api,
)

logger = logging.getLogger(__name__)


def _normalized(value):
    return str(value or '').lower()


def search_patients(patients, query):
    """Case-insensitive match on full name, patient_id or contact number. Empty query keeps all."""
    q = _normalized(query).strip()
    if not q:
        return list(patients)
    return [
        p for p in patients
        if q in _normalized(p.full_name)
        or q in _normalized(p.patient_id)
        or q in _normalized(p.contact_number)
    ]


def fetch_list(call, label):
    try:
        return call()
    except BaseAppException as exc:
        raise FetchError(
            message=f'Failed to fetch {label}. Please try again later.',
            detail={'reason': exc.message},
        ) from exc


def fetch_one(call, label):
    """Single record. A missing record becomes '<Label> not found'."""
    try:
        return call()
    except NotFoundError:
        raise NotFoundError(
            message=f'{label.capitalize()} not found',
            code=f'{label.upper()}_NOT_FOUND',
        )
    except BaseAppException as exc:
        raise FetchError(
            message=f'Failed to fetch {label} data',
            detail={'reason': exc.message},
        ) from exc


def _save(call, label):
    try:
        return call()
    except NotFoundError:
        raise NotFoundError(
            message=f'{label.capitalize()} not found',
            code=f'{label.upper()}_NOT_FOUND',
        )
    except BaseAppException as exc:
        logger.warning("[Services] saving %s failed: %s", label, exc.message)
        raise SaveError(
            message=f'Failed to save {label}',
            detail={'reason': exc.message},
        ) from exc


def parse_form(parse, data):
    """Form body to record. A number field holding text is a validation error."""
    try:
        return parse(data)
    except FieldValueError as exc:
        raise ValidationError(
            message='Request validation failed.',
            detail={'errors': [{'field': exc.field, 'message': f'{exc.field} must be a whole number.'}]},
        ) from exc


# ── patients ───────────────────────────────────────────────────────────────

def validate_patient(patient):
    errors = []
    if not patient.first_name.strip():
        errors.append({'field': 'firstName', 'message': 'First name is required.'})
    if not patient.last_name.strip():
        errors.append({'field': 'lastName', 'message': 'Last name is required.'})
    if patient.date_of_birth:
        try:
            date.fromisoformat(patient.date_of_birth)
        except ValueError:
            errors.append({'field': 'dateOfBirth', 'message': 'Date of birth must be YYYY-MM-DD.'})

    if errors:
        raise ValidationError(
            message='Request validation failed.',
            detail={'errors': errors},
        )


def save_patient(client, data, pk=None):
    """
    Create (pk=None) or fully replace a patient from form data.

    Age is recomputed on every save. On edit the stored patient_id wins over
    whatever the form sent, so the identifier never changes after creation.
    """
    patient = parse_form(patient_from_api, data)
    validate_patient(patient)

    if pk is not None:
        existing = fetch_one(lambda: client.get_patient(pk), 'patient')
        patient.id = existing.id if existing.id is not None else pk
        patient.patient_id = existing.patient_id or patient.patient_id
        if not patient.date_of_birth:
            patient.age = existing.age

    derive_patient_fields(patient, is_edit=pk is not None)
    payload = patient_to_api(patient)

    if pk is not None:
        return _save(lambda: client.update_patient(pk, payload), 'patient')
    return _save(lambda: client.create_patient(payload), 'patient')


# ── medicines ──────────────────────────────────────────────────────────────

def save_medicine(client, data, pk=None):
    medicine = parse_form(medicine_from_api, data)
    if not medicine.name.strip():
        raise ValidationError(
            message='Request validation failed.',
            detail={'errors': [{'field': 'name', 'message': 'Medicine name is required.'}]},
        )
    if pk is not None:
        medicine.id = int(pk)
    payload = medicine_to_api(medicine)

    if pk is not None:
        return _save(lambda: client.update_medicine(pk, payload), 'medicine')
    return _save(lambda: client.create_medicine(payload), 'medicine')


# ── deletion ───────────────────────────────────────────────────────────────

def delete_record(call, label, pk, confirm):
    """
    Delete after explicit confirmation.

    Without confirm nothing is sent; the caller gets a WarningError and
    resubmits with confirm=true.
    """
    if not confirm:
        raise WarningError(
            message=f'Are you sure you want to delete this {label}?',
            detail={'id': pk},
        )
    try:
        call()
    except BaseAppException as exc:
        logger.warning("[Services] deleting %s %s failed: %s", label, pk, exc.message)
        raise SaveError(
            message=f'Failed to delete {label}. Please try again.',
            detail={'reason': exc.message},
        ) from exc
    logger.info("[Services] deleted %s %s", label, pk)


# ── prescriptions ──────────────────────────────────────────────────────────

def get_prescription_with_patient(client, pk):
    """
    Prescription plus its patient. A patient that no longer exists is
    reported as None rather than failing the whole screen.
    """
    prescription = fetch_one(lambda: client.get_prescription(pk), 'prescription')

    patient = None
    if prescription.patient_id:
        try:
            patient = client.get_patient(prescription.patient_id)
        except NotFoundError:
            logger.info("[Services] patient %s of prescription %s not found",
                        prescription.patient_id, pk)
        except BaseAppException as exc:
            raise FetchError(
                message='Failed to load prescription data',
                detail={'reason': exc.message},
            ) from exc
    return prescription, patient


def prepare_composer(client, pk=None):
    """
    Catalogs first, then the prescription being edited (if any).

    Returns (composer, patients).
    """
    patients, medicines = load_catalogs(client)
    if pk is None:
        return PrescriptionComposer(medicines=medicines), patients

    prescription = fetch_one(lambda: client.get_prescription(pk), 'prescription')
    return PrescriptionComposer.for_edit(prescription, medicines), patients
