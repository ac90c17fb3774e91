"""
Record dataclasses: the only shapes the front-desk logic knows about.

serializers.py converts backend JSON (camelCase, ISO date-times) into these
and back. Composer, history filter and renderers never touch raw payloads.
Dates are kept as "YYYY-MM-DD" strings, the same value a date input holds.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Patient:
    first_name: str = ""
    last_name: str = ""
    gender: str = ""
    date_of_birth: str = ""
    contact_number: str = ""
    email: str = ""
    address: str = ""
    age: Optional[int] = None
    patient_id: str = ""         # human-readable, generated once on create
    id: Optional[int] = None     # backend primary key

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Medicine:
    name: str = ""
    description: str = ""
    manufacturer: str = ""
    category: str = ""
    is_active: bool = True
    id: Optional[int] = None


@dataclass
class PrescriptionItem:
    medicine_id: int
    dosage: str
    frequency: str
    duration: int                # days
    medicine_name: str = ""      # snapshot taken when the item was added


@dataclass
class Prescription:
    patient_id: Optional[int] = None     # Patient.id, not Patient.patient_id
    visit_date: str = ""
    notes: str = ""
    items: list[PrescriptionItem] = field(default_factory=list)
    prescription_id: str = ""
    patient_name: str = ""
    id: Optional[int] = None


@dataclass
class PendingItem:
    """Raw input of the item being typed in. Everything stays a string until add_item()."""

    medicine_id: str = ""
    medicine_name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
