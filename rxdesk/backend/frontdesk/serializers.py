"""
Wire format <-> record dataclasses.

The backend speaks camelCase JSON with ISO-8601 date-times; the browser
posts the same shape. *_from_api() parses tolerantly (missing keys become
defaults), *_to_api() writes the full record back, since every edit is a
full replace.
"""

from typing import Any, Optional

from .types import Medicine, Patient, Prescription, PrescriptionItem


def to_date_input(value: Any) -> str:
    """'2024-06-15T00:00:00.000+00:00' -> '2024-06-15'. Empty for None / ''."""
    if not value:
        return ""
    return str(value).split("T")[0]


class FieldValueError(ValueError):
    """A field that must hold a whole number holds something else."""

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"{field}: {value!r} is not a whole number")


def _to_int(raw: dict, key: str) -> Optional[int]:
    value = raw.get(key)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise FieldValueError(key, value)


def _to_bool(value: Any, default: bool = True) -> bool:
    """Form posts send "false" / "0" as strings; JSON sends real booleans."""
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _text(raw: dict, *keys: str) -> str:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return str(value)
    return ""


# ── Patient ────────────────────────────────────────────────────────────────

def patient_from_api(raw: dict) -> Patient:
    raw = raw or {}
    return Patient(
        id=_to_int(raw, "id"),
        patient_id=_text(raw, "patientId"),
        first_name=_text(raw, "firstName"),
        last_name=_text(raw, "lastName"),
        gender=_text(raw, "gender"),
        date_of_birth=to_date_input(raw.get("dateOfBirth")),
        age=_to_int(raw, "age"),
        contact_number=_text(raw, "contactNumber"),
        email=_text(raw, "email"),
        address=_text(raw, "address"),
    )


def patient_to_api(patient: Patient) -> dict:
    data = {
        "patientId": patient.patient_id,
        "firstName": patient.first_name,
        "lastName": patient.last_name,
        "gender": patient.gender,
        "dateOfBirth": patient.date_of_birth,
        "age": patient.age,
        "contactNumber": patient.contact_number,
        "email": patient.email,
        "address": patient.address,
    }
    if patient.id is not None:
        data["id"] = patient.id
    return data


# ── Medicine ───────────────────────────────────────────────────────────────

def medicine_from_api(raw: dict) -> Medicine:
    raw = raw or {}
    return Medicine(
        id=_to_int(raw, "id"),
        name=_text(raw, "name"),
        description=_text(raw, "description"),
        manufacturer=_text(raw, "manufacturer"),
        category=_text(raw, "category"),
        is_active=_to_bool(raw.get("isActive")),
    )


def medicine_to_api(medicine: Medicine) -> dict:
    data = {
        "name": medicine.name,
        "description": medicine.description,
        "manufacturer": medicine.manufacturer,
        "category": medicine.category,
        "isActive": medicine.is_active,
    }
    if medicine.id is not None:
        data["id"] = medicine.id
    return data


# ── Prescription ───────────────────────────────────────────────────────────

def item_from_api(raw: dict) -> PrescriptionItem:
    return PrescriptionItem(
        medicine_id=_to_int(raw, "medicineId"),
        medicine_name=_text(raw, "medicineName"),
        dosage=_text(raw, "dosage"),
        frequency=_text(raw, "frequency"),
        duration=_to_int(raw, "duration"),
    )


def item_to_api(item: PrescriptionItem) -> dict:
    return {
        "medicineId": item.medicine_id,
        "medicineName": item.medicine_name,
        "dosage": item.dosage,
        "frequency": item.frequency,
        "duration": item.duration,
    }


def prescription_from_api(raw: dict) -> Prescription:
    raw = raw or {}
    # older backend builds name the list medicineItems
    raw_items = raw.get("prescriptionItems") or raw.get("medicineItems") or []
    return Prescription(
        id=_to_int(raw, "id"),
        prescription_id=_text(raw, "prescriptionId"),
        patient_id=_to_int(raw, "patientId"),
        patient_name=_text(raw, "patientName"),
        visit_date=to_date_input(raw.get("visitDate") or raw.get("prescriptionDate")),
        notes=_text(raw, "notes"),
        items=[item_from_api(i) for i in raw_items],
    )


def prescription_to_api(prescription: Prescription) -> dict:
    """Submit payload: header plus the full ordered item list (may be empty)."""
    return {
        "patientId": prescription.patient_id,
        "visitDate": prescription.visit_date,
        "notes": prescription.notes,
        "prescriptionItems": [item_to_api(i) for i in prescription.items],
    }


def serialize_prescription(prescription: Prescription) -> dict:
    """Full record for screen responses, including identifiers."""
    data = prescription_to_api(prescription)
    data.update({
        "id": prescription.id,
        "prescriptionId": prescription.prescription_id,
        "patientName": prescription.patient_name,
    })
    return data


def many(parse, raw_list: Optional[list]) -> list:
    """Parse a list body; a null body is an empty list."""
    return [parse(r) for r in (raw_list or [])]
