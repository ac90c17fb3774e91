"""
Entity Client: typed wrapper over the backend CRUD endpoints.

Every method sends one request and returns record dataclasses. Failures are
mapped onto the app exception hierarchy:
  404 on any call             -> NotFoundError
  empty body on a single GET  -> NotFoundError
  other failure on a read     -> FetchError
  other failure on a write    -> SaveError
No retries: a failed call is terminal for that attempt.
"""

import logging

import requests
from django.conf import settings

from .exceptions import FetchError, NotFoundError, SaveError
from .serializers import (
    FieldValueError,
    many,
    medicine_from_api,
    patient_from_api,
    prescription_from_api,
)

logger = logging.getLogger(__name__)

_WRITE_METHODS = {'POST', 'PUT', 'DELETE'}


class BackendClient:

    def __init__(self, base_url, timeout=10, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    # ── transport ──────────────────────────────────────────────────────────

    def _request(self, method, path, payload=None, params=None):
        url = f"{self.base_url}{path}"
        error_cls = SaveError if method in _WRITE_METHODS else FetchError
        logger.debug("[Client] %s %s params=%s", method, url, params)

        try:
            response = self.session.request(
                method, url, json=payload, params=params, timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("[Client] %s %s failed: %s", method, url, exc)
            raise error_cls(
                message=f"Backend unreachable: {exc}",
                code='BACKEND_UNREACHABLE',
                detail={'method': method, 'path': path},
            ) from exc

        if response.status_code == 404:
            raise NotFoundError(
                message='Record not found',
                detail={'method': method, 'path': path},
            )
        if not response.ok:
            logger.warning("[Client] %s %s -> HTTP %d", method, url, response.status_code)
            raise error_cls(
                message=f"Backend returned HTTP {response.status_code}",
                detail={'method': method, 'path': path, 'status': response.status_code},
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(
                message='Backend returned a malformed body',
                code='MALFORMED_RESPONSE',
                detail={'method': method, 'path': path},
            ) from exc

    def _parse(self, parse, body, method, path):
        try:
            return parse(body)
        except FieldValueError as exc:
            error_cls = SaveError if method in _WRITE_METHODS else FetchError
            logger.warning("[Client] %s %s: bad %s value %r", method, path, exc.field, exc.value)
            raise error_cls(
                message='Backend returned a malformed body',
                code='MALFORMED_RESPONSE',
                detail={'method': method, 'path': path, 'field': exc.field},
            ) from exc

    def _get_one(self, parse, path):
        body = self._request('GET', path)
        if body is None:
            raise NotFoundError(
                message='No record data returned',
                code='EMPTY_RESPONSE',
                detail={'method': 'GET', 'path': path},
            )
        return self._parse(parse, body, 'GET', path)

    def _get_many(self, parse, path, params=None):
        body = self._request('GET', path, params=params)
        return self._parse(lambda raw: many(parse, raw), body, 'GET', path)

    def _write(self, parse, method, path, payload):
        return self._parse(parse, self._request(method, path, payload), method, path)

    # ── patients ───────────────────────────────────────────────────────────

    def list_patients(self):
        return self._get_many(patient_from_api, '/patients')

    def get_patient(self, pk):
        return self._get_one(patient_from_api, f'/patients/{pk}')

    def create_patient(self, payload):
        return self._write(patient_from_api, 'POST', '/patients', payload)

    def update_patient(self, pk, payload):
        return self._write(patient_from_api, 'PUT', f'/patients/{pk}', payload)

    def delete_patient(self, pk):
        self._request('DELETE', f'/patients/{pk}')

    # ── medicines ──────────────────────────────────────────────────────────

    def list_medicines(self):
        return self._get_many(medicine_from_api, '/medicines')

    def get_medicine(self, pk):
        return self._get_one(medicine_from_api, f'/medicines/{pk}')

    def create_medicine(self, payload):
        return self._write(medicine_from_api, 'POST', '/medicines', payload)

    def update_medicine(self, pk, payload):
        return self._write(medicine_from_api, 'PUT', f'/medicines/{pk}', payload)

    def delete_medicine(self, pk):
        self._request('DELETE', f'/medicines/{pk}')

    # ── prescriptions ──────────────────────────────────────────────────────

    def list_prescriptions(self):
        return self._get_many(prescription_from_api, '/prescriptions')

    def get_prescription(self, pk):
        return self._get_one(prescription_from_api, f'/prescriptions/{pk}')

    def create_prescription(self, payload):
        return self._write(prescription_from_api, 'POST', '/prescriptions', payload)

    def update_prescription(self, pk, payload):
        return self._write(prescription_from_api, 'PUT', f'/prescriptions/{pk}', payload)

    def delete_prescription(self, pk):
        self._request('DELETE', f'/prescriptions/{pk}')

    def list_prescriptions_by_patient(self, patient_pk):
        return self._get_many(prescription_from_api, f'/prescriptions/patient/{patient_pk}')

    def search_prescriptions_by_date_range(self, patient_pk, start_date, end_date):
        return self._get_many(
            prescription_from_api,
            f'/prescriptions/patient/{patient_pk}/search',
            params={'startDate': start_date, 'endDate': end_date},
        )

    def list_prescriptions_older_than(self, patient_pk, years):
        return self._get_many(
            prescription_from_api,
            f'/prescriptions/patient/{patient_pk}/older-than/{years}',
        )


def get_backend_client() -> BackendClient:
    """Client configured from settings.BACKEND_API_URL / BACKEND_TIMEOUT."""
    return BackendClient(
        base_url=settings.BACKEND_API_URL,
        timeout=getattr(settings, 'BACKEND_TIMEOUT', 10),
    )
