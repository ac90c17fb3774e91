"""
Shared fixtures for all tests.

factory-boy factories and the in-memory FakeBackend live here so both unit/
and integration/ can import them.
"""
import itertools
from datetime import date
from unittest.mock import patch

import factory
import pytest
from django.test import Client

from frontdesk.exceptions import FetchError, NotFoundError, SaveError
from frontdesk.history import years_before
from frontdesk.serializers import (
    many,
    medicine_from_api,
    patient_from_api,
    prescription_from_api,
)
from frontdesk.types import Medicine, Patient, Prescription, PrescriptionItem


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class PatientFactory(factory.Factory):
    class Meta:
        model = Patient

    id = factory.Sequence(lambda n: n + 1)
    patient_id = factory.Sequence(lambda n: f'P{100000 + n}')
    first_name = 'John'
    last_name = 'Doe'
    gender = 'Male'
    date_of_birth = '1990-01-15'
    age = 34
    contact_number = '555-0100'


class MedicineFactory(factory.Factory):
    class Meta:
        model = Medicine

    id = factory.Sequence(lambda n: n + 1)
    name = factory.Sequence(lambda n: f'Medicine {n}')
    manufacturer = 'Acme Pharma'
    category = 'Analgesic'
    is_active = True


class PrescriptionItemFactory(factory.Factory):
    class Meta:
        model = PrescriptionItem

    medicine_id = 1
    medicine_name = 'Paracetamol'
    dosage = '500mg'
    frequency = 'Twice daily'
    duration = 5


class PrescriptionFactory(factory.Factory):
    class Meta:
        model = Prescription

    id = factory.Sequence(lambda n: n + 1)
    prescription_id = factory.Sequence(lambda n: f'RX{10000 + n}')
    patient_id = 1
    visit_date = '2024-03-01'
    notes = ''
    items = factory.List([factory.SubFactory(PrescriptionItemFactory)])


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class FakeBackend:
    """
    Stands in for BackendClient: same methods, records kept as wire dicts.

    calls   : names of every method invoked, in order
    fail_on : method names that raise instead of answering
    """

    def __init__(self):
        self.patients = {}
        self.medicines = {}
        self.prescriptions = {}
        self.calls = []
        self.fail_on = set()
        self._ids = itertools.count(1)

    def _call(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            if name.startswith(('create', 'update', 'delete')):
                raise SaveError(message='Backend returned HTTP 500')
            raise FetchError(message='Backend returned HTTP 500')

    @staticmethod
    def _get(table, pk):
        if int(pk) not in table:
            raise NotFoundError(message='Record not found')
        return table[int(pk)]

    def _insert(self, table, payload):
        pk = next(self._ids)
        record = dict(payload, id=pk)
        table[pk] = record
        return record

    def _replace(self, table, pk, payload):
        self._get(table, pk)
        table[int(pk)] = dict(payload, id=int(pk))
        return table[int(pk)]

    # patients
    def list_patients(self):
        self._call('list_patients')
        return many(patient_from_api, list(self.patients.values()))

    def get_patient(self, pk):
        self._call('get_patient')
        return patient_from_api(self._get(self.patients, pk))

    def create_patient(self, payload):
        self._call('create_patient')
        return patient_from_api(self._insert(self.patients, payload))

    def update_patient(self, pk, payload):
        self._call('update_patient')
        return patient_from_api(self._replace(self.patients, pk, payload))

    def delete_patient(self, pk):
        self._call('delete_patient')
        self._get(self.patients, pk)
        del self.patients[int(pk)]

    # medicines
    def list_medicines(self):
        self._call('list_medicines')
        return many(medicine_from_api, list(self.medicines.values()))

    def get_medicine(self, pk):
        self._call('get_medicine')
        return medicine_from_api(self._get(self.medicines, pk))

    def create_medicine(self, payload):
        self._call('create_medicine')
        return medicine_from_api(self._insert(self.medicines, payload))

    def update_medicine(self, pk, payload):
        self._call('update_medicine')
        return medicine_from_api(self._replace(self.medicines, pk, payload))

    def delete_medicine(self, pk):
        self._call('delete_medicine')
        self._get(self.medicines, pk)
        del self.medicines[int(pk)]

    # prescriptions
    def list_prescriptions(self):
        self._call('list_prescriptions')
        return many(prescription_from_api, list(self.prescriptions.values()))

    def get_prescription(self, pk):
        self._call('get_prescription')
        return prescription_from_api(self._get(self.prescriptions, pk))

    def create_prescription(self, payload):
        self._call('create_prescription')
        record = self._insert(self.prescriptions, payload)
        record['prescriptionId'] = f"RX{record['id']:05d}"
        return prescription_from_api(record)

    def update_prescription(self, pk, payload):
        self._call('update_prescription')
        existing = self._get(self.prescriptions, pk)
        record = self._replace(self.prescriptions, pk, payload)
        record['prescriptionId'] = existing.get('prescriptionId', '')
        return prescription_from_api(record)

    def delete_prescription(self, pk):
        self._call('delete_prescription')
        self._get(self.prescriptions, pk)
        del self.prescriptions[int(pk)]

    def _of_patient(self, patient_pk):
        return [p for p in self.prescriptions.values() if str(p.get('patientId')) == str(patient_pk)]

    def list_prescriptions_by_patient(self, patient_pk):
        self._call('list_prescriptions_by_patient')
        return many(prescription_from_api, self._of_patient(patient_pk))

    def search_prescriptions_by_date_range(self, patient_pk, start_date, end_date):
        self._call('search_prescriptions_by_date_range')
        return many(prescription_from_api, [
            p for p in self._of_patient(patient_pk)
            if start_date <= p['visitDate'][:10] <= end_date
        ])

    def list_prescriptions_older_than(self, patient_pk, years, today=None):
        self._call('list_prescriptions_older_than')
        cutoff = years_before(today or date.today(), years).isoformat()
        # inclusive on purpose: the filter must still drop the boundary day
        return many(prescription_from_api, [
            p for p in self._of_patient(patient_pk) if p['visitDate'][:10] <= cutoff
        ])

    # seeding helpers
    def add_patient(self, **fields):
        return self._insert(self.patients, fields)

    def add_medicine(self, **fields):
        fields.setdefault('isActive', True)
        return self._insert(self.medicines, fields)

    def add_prescription(self, **fields):
        record = self._insert(self.prescriptions, fields)
        record.setdefault('prescriptionId', f"RX{record['id']:05d}")
        return record


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def api_client(fake_backend):
    """Django test client whose views talk to fake_backend."""
    with patch('frontdesk.views.get_backend_client', return_value=fake_backend):
        yield Client()


@pytest.fixture
def sample_patient_payload():
    """Minimal valid body for POST /api/patients/."""
    return {
        'firstName': 'Alice',
        'lastName': 'Wang',
        'gender': 'Female',
        'dateOfBirth': '1990-01-01',
        'contactNumber': '555-0199',
        'email': 'alice@example.com',
        'address': '1 Main St',
    }
