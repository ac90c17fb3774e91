"""
Document layer input and output shapes.

Renderers only see a PrescriptionViewModel and only return a
RenderedDocument; they know nothing about the backend or the composer.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class PatientLine:
    name: str
    patient_id: str
    age: Optional[int]
    gender: str


@dataclass
class ItemLine:
    medicine: str        # medicine name, or the medicine id when no name was captured
    dosage: str
    frequency: str
    duration: Optional[int]


@dataclass
class PrescriptionViewModel:
    prescription_id: str
    visit_date: str
    notes: str
    patient: Optional[PatientLine]      # None when the patient could not be loaded
    lines: list[ItemLine] = field(default_factory=list)


@dataclass
class RenderedDocument:
    content: str
    content_type: str
    filename: Optional[str] = None      # set for downloads


def build_view_model(prescription, patient=None) -> PrescriptionViewModel:
    return PrescriptionViewModel(
        prescription_id=prescription.prescription_id,
        visit_date=prescription.visit_date,
        notes=prescription.notes,
        patient=PatientLine(
            name=patient.full_name,
            patient_id=patient.patient_id,
            age=patient.age,
            gender=patient.gender,
        ) if patient is not None else None,
        lines=[
            ItemLine(
                medicine=item.medicine_name or str(item.medicine_id),
                dosage=item.dosage,
                frequency=item.frequency,
                duration=item.duration,
            )
            for item in prescription.items
        ],
    )
