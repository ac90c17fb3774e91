"""
Integration tests: prescription screens through the Django test Client.

The composer draft lives in the session between requests, so every test
drives one Client through the same sequence a browser would.
"""
import json
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.test import Client

from frontdesk.client import BackendClient


def send(api_client, method, url, payload=None):
    response = getattr(api_client, method)(
        url,
        data=json.dumps(payload) if payload is not None else '',
        content_type='application/json',
    )
    return response.status_code, json.loads(response.content)


def act(api_client, url, action, **fields):
    return send(api_client, 'post', url, dict(fields, action=action))


@pytest.fixture
def catalog(fake_backend):
    patient = fake_backend.add_patient(patientId='P123456', firstName='Alice', lastName='Wang', age=34)
    paracetamol = fake_backend.add_medicine(name='Paracetamol')
    ibuprofen = fake_backend.add_medicine(name='Ibuprofen')
    fake_backend.add_medicine(name='Retired', isActive=False)
    return patient, paracetamol, ibuprofen


def add_item(api_client, url, medicine_id, dosage, duration='5'):
    act(api_client, url, 'select_medicine', medicineId=str(medicine_id))
    act(api_client, url, 'update_pending', dosage=dosage, frequency='Twice daily', duration=duration)
    return act(api_client, url, 'add_item')


# ===================================================================
# Compose (new)
# ===================================================================

class TestComposeNew:

    URL = '/api/prescriptions/compose/'

    def test_start_lists_catalogs(self, api_client, catalog):
        status, body = send(api_client, 'get', self.URL)

        assert status == 200
        assert [p['patientId'] for p in body['patients']] == ['P123456']
        assert [m['name'] for m in body['draft']['medicineOptions']] == ['Paracetamol', 'Ibuprofen']
        assert body['draft']['prescriptionItems'] == []

    def test_two_items_remove_first_persists_second(self, api_client, fake_backend, catalog):
        patient, paracetamol, ibuprofen = catalog
        send(api_client, 'get', self.URL)
        act(api_client, self.URL, 'update_header', patientId=patient['id'], visitDate='2024-05-01', notes='rest')

        add_item(api_client, self.URL, paracetamol['id'], '500mg')
        status, body = add_item(api_client, self.URL, ibuprofen['id'], '200mg')
        assert status == 200
        assert [i['medicineName'] for i in body['draft']['prescriptionItems']] == ['Paracetamol', 'Ibuprofen']

        status, body = act(api_client, self.URL, 'remove_item', index=0)
        assert [i['medicineName'] for i in body['draft']['prescriptionItems']] == ['Ibuprofen']

        status, body = act(api_client, self.URL, 'submit')
        assert status == 201
        assert body['prescription']['prescriptionId'].startswith('RX')

        stored = fake_backend.prescriptions[body['prescription']['id']]
        assert stored['patientId'] == patient['id']
        assert stored['notes'] == 'rest'
        assert [(i['medicineId'], i['dosage']) for i in stored['prescriptionItems']] == [(ibuprofen['id'], '200mg')]

    def test_incomplete_item_keeps_draft(self, api_client, catalog):
        _, paracetamol, _ = catalog
        send(api_client, 'get', self.URL)
        act(api_client, self.URL, 'select_medicine', medicineId=str(paracetamol['id']))
        act(api_client, self.URL, 'update_pending', dosage='500mg')

        status, body = act(api_client, self.URL, 'add_item')

        assert status == 400
        assert body['code'] == 'INCOMPLETE_ITEM'
        assert body['state']['pending']['dosage'] == '500mg'
        assert body['state']['prescriptionItems'] == []

    def test_submit_without_patient(self, api_client, fake_backend, catalog):
        send(api_client, 'get', self.URL)
        status, body = act(api_client, self.URL, 'submit')

        assert status == 400
        assert body['code'] == 'PATIENT_REQUIRED'
        assert fake_backend.prescriptions == {}

    def test_save_failure_keeps_draft_for_retry(self, api_client, fake_backend, catalog):
        patient, paracetamol, _ = catalog
        send(api_client, 'get', self.URL)
        act(api_client, self.URL, 'update_header', patientId=patient['id'])
        add_item(api_client, self.URL, paracetamol['id'], '500mg')
        fake_backend.fail_on.add('create_prescription')

        status, body = act(api_client, self.URL, 'submit')

        assert status == 502
        assert body['message'] == 'Failed to save prescription'
        assert len(body['state']['prescriptionItems']) == 1

        fake_backend.fail_on.clear()
        status, body = act(api_client, self.URL, 'submit')
        assert status == 201
        assert len(body['prescription']['prescriptionItems']) == 1

    def test_catalog_failure(self, api_client, fake_backend):
        fake_backend.fail_on.add('list_medicines')
        status, body = send(api_client, 'get', self.URL)
        assert status == 502
        assert body['message'] == 'Failed to load data'

    def test_discard(self, api_client, catalog):
        patient, _, _ = catalog
        send(api_client, 'get', self.URL)
        act(api_client, self.URL, 'update_header', notes='draft')

        status, body = act(api_client, self.URL, 'discard')
        assert body == {'discarded': True}

        status, body = act(api_client, self.URL, 'update_header', patientId=patient['id'])
        assert body['draft']['notes'] == ''

    def test_bad_index(self, api_client, catalog):
        send(api_client, 'get', self.URL)
        status, body = act(api_client, self.URL, 'remove_item', index='first')
        assert status == 400
        assert body['code'] == 'INVALID_INDEX'


# ===================================================================
# Compose (edit)
# ===================================================================

class TestComposeEdit:

    def test_edit_replaces_record(self, api_client, fake_backend, catalog):
        patient, paracetamol, ibuprofen = catalog
        rx = fake_backend.add_prescription(
            patientId=patient['id'], visitDate='2024-01-02T00:00:00', notes='old',
            prescriptionItems=[{'medicineId': paracetamol['id'], 'medicineName': 'Paracetamol',
                                'dosage': '500mg', 'frequency': 'daily', 'duration': 3}],
        )
        url = f"/api/prescriptions/{rx['id']}/compose/"

        status, body = send(api_client, 'get', url)
        assert body['draft']['prescriptionPk'] == rx['id']
        assert body['draft']['visitDate'] == '2024-01-02'
        assert len(body['draft']['prescriptionItems']) == 1

        act(api_client, url, 'update_header', notes='new')
        add_item(api_client, url, ibuprofen['id'], '200mg')
        status, body = act(api_client, url, 'submit')

        assert status == 200
        stored = fake_backend.prescriptions[rx['id']]
        assert stored['notes'] == 'new'
        assert len(stored['prescriptionItems']) == 2
        assert stored['prescriptionId'] == rx['prescriptionId']
        assert len(fake_backend.prescriptions) == 1

    def test_edit_missing_prescription(self, api_client, catalog):
        status, body = send(api_client, 'get', '/api/prescriptions/42/compose/')
        assert status == 404
        assert body['message'] == 'Prescription not found'


# ===================================================================
# View / delete / documents
# ===================================================================

class TestPrescriptionView:

    @pytest.fixture
    def stored(self, fake_backend, catalog):
        patient, paracetamol, _ = catalog
        return fake_backend.add_prescription(
            patientId=patient['id'], visitDate='2024-05-01', notes='after meals',
            prescriptionItems=[{'medicineId': paracetamol['id'], 'medicineName': 'Paracetamol',
                                'dosage': '500mg', 'frequency': 'Twice daily', 'duration': 5}],
        )

    def test_detail_with_patient(self, api_client, stored):
        status, body = send(api_client, 'get', f"/api/prescriptions/{stored['id']}/")

        assert status == 200
        assert body['prescription']['prescriptionId'] == stored['prescriptionId']
        assert body['patient']['patientId'] == 'P123456'

    def test_detail_with_missing_patient(self, api_client, fake_backend, stored):
        fake_backend.patients.clear()
        status, body = send(api_client, 'get', f"/api/prescriptions/{stored['id']}/")
        assert status == 200
        assert body['patient'] is None

    def test_list(self, api_client, stored):
        status, body = send(api_client, 'get', '/api/prescriptions/')
        assert [p['id'] for p in body['prescriptions']] == [stored['id']]

    def test_list_failure(self, api_client, fake_backend):
        fake_backend.fail_on.add('list_prescriptions')
        status, body = send(api_client, 'get', '/api/prescriptions/')
        assert status == 502
        assert body['message'] == 'Failed to fetch prescriptions. Please try again later.'

    def test_not_found(self, api_client, catalog):
        status, body = send(api_client, 'get', '/api/prescriptions/999/')
        assert status == 404
        assert body['code'] == 'PRESCRIPTION_NOT_FOUND'

    def test_delete_flow(self, api_client, fake_backend, stored):
        url = f"/api/prescriptions/{stored['id']}/"

        status, body = send(api_client, 'delete', url)
        assert status == 409
        assert body['message'] == 'Are you sure you want to delete this prescription?'

        status, body = send(api_client, 'delete', url + '?confirm=true')
        assert status == 200
        assert fake_backend.prescriptions == {}

    def test_print_page(self, api_client, stored):
        response = api_client.get(f"/api/prescriptions/{stored['id']}/print/")

        assert response.status_code == 200
        assert response['Content-Type'].startswith('text/html')
        content = response.content.decode()
        assert 'Alice Wang' in content
        assert 'Paracetamol' in content
        assert 'window.print()' in content

    def test_download(self, api_client, stored):
        response = api_client.get(f"/api/prescriptions/{stored['id']}/download/")

        assert response.status_code == 200
        assert response['Content-Disposition'] == f'attachment; filename="Prescription-{stored["prescriptionId"]}.txt"'
        assert 'Page 1 of 1' in response.content.decode()

    def test_download_filename_is_header_safe(self, api_client, fake_backend, catalog):
        rx = fake_backend.add_prescription(
            patientId=catalog[0]['id'], visitDate='2024-05-01', prescriptionId='RX"7\r\n8',
            prescriptionItems=[],
        )

        response = api_client.get(f"/api/prescriptions/{rx['id']}/download/")

        assert response.status_code == 200
        assert response['Content-Disposition'] == 'attachment; filename="Prescription-RX_7_8.txt"'

    def test_empty_backend_body_is_not_found(self):
        session = MagicMock(spec=requests.Session)
        empty = requests.Response()
        empty.status_code = 200
        empty._content = b''
        session.request.return_value = empty
        backend = BackendClient('http://backend.test/api', session=session)

        with patch('frontdesk.views.get_backend_client', return_value=backend):
            response = Client().get('/api/prescriptions/3/download/')

        assert response.status_code == 404
        assert json.loads(response.content)['message'] == 'Prescription not found'
        assert 'Content-Disposition' not in response

    def test_document_not_found(self, api_client, catalog):
        response = api_client.get('/api/prescriptions/7/download/')
        assert response.status_code == 404
        assert json.loads(response.content)['type'] == 'not_found'
