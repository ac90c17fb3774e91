import json
import logging

from django.http import HttpResponse, JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .client import get_backend_client
from .composer import PrescriptionComposer
from .documents import build_view_model, get_renderer
from .exceptions import BaseAppException, ValidationError
from .history import HistoryFilter
from .serializers import (
    medicine_to_api,
    patient_to_api,
    prescription_to_api,
    serialize_prescription,
)
from .services import (
    delete_record,
    fetch_list,
    fetch_one,
    get_prescription_with_patient,
    prepare_composer,
    save_medicine,
    save_patient,
    search_patients,
)

logger = logging.getLogger(__name__)


class ExceptionHandlerMixin:
    """
    Turns any BaseAppException raised while handling a request into the
    unified error body:

        {"type": ..., "code": ..., "message": ..., "detail": ..., "state": ...}

    "state" is the screen's preserved state (draft, displayed list) when the
    view has one, so the browser can keep showing it. Anything that is not a
    BaseAppException propagates.
    """

    def get_error_state(self):
        return None

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except BaseAppException as exc:
            logger.info("[Views] %s %s -> %s %s", request.method, request.path, exc.type, exc.code)
            body = exc.to_dict()
            state = self.get_error_state()
            if state is not None:
                body['state'] = state
            return JsonResponse(body, status=exc.http_status)


def json_body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except ValueError:
        raise ValidationError(message='Malformed JSON body', code='MALFORMED_JSON')
    if not isinstance(data, dict):
        raise ValidationError(message='JSON body must be an object', code='MALFORMED_JSON')
    return data


def is_confirmed(request):
    return request.GET.get('confirm', '').lower() in ('1', 'true', 'yes')


class BaseScreenView(ExceptionHandlerMixin, View):

    @property
    def client(self):
        if not hasattr(self, '_client'):
            self._client = get_backend_client()
        return self._client


# ── patients ───────────────────────────────────────────────────────────────

@method_decorator(csrf_exempt, name='dispatch')
class PatientListView(BaseScreenView):
    """GET /api/patients/?q= - list and search; POST - register a patient"""

    def get(self, request):
        patients = fetch_list(self.client.list_patients, 'patients')
        query = request.GET.get('q', '')
        return JsonResponse({
            'query': query,
            'patients': [patient_to_api(p) for p in search_patients(patients, query)],
        })

    def post(self, request):
        patient = save_patient(self.client, json_body(request))
        return JsonResponse({'patient': patient_to_api(patient)}, status=201)


@method_decorator(csrf_exempt, name='dispatch')
class PatientDetailView(BaseScreenView):
    """GET/PUT/DELETE /api/patients/<pk>/"""

    def get(self, request, pk):
        patient = fetch_one(lambda: self.client.get_patient(pk), 'patient')
        return JsonResponse({'patient': patient_to_api(patient)})

    def put(self, request, pk):
        patient = save_patient(self.client, json_body(request), pk=pk)
        return JsonResponse({'patient': patient_to_api(patient)})

    def delete(self, request, pk):
        delete_record(lambda: self.client.delete_patient(pk), 'patient', pk, is_confirmed(request))
        return JsonResponse({'deleted': True, 'id': pk})


@method_decorator(csrf_exempt, name='dispatch')
class PatientHistoryView(BaseScreenView):
    """
    GET  /api/patients/<pk>/history/ - patient plus all prescriptions
    POST /api/patients/<pk>/history/ - {"action": "date_range" | "older_than" | "clear", ...}
    """

    history = None

    def session_key(self, pk):
        return f'history:{pk}'

    def get_error_state(self):
        return self.history.to_state() if self.history is not None else None

    def _load_filter(self, request, pk):
        state = request.session.get(self.session_key(pk))
        return HistoryFilter.from_state(state) if state else HistoryFilter(patient_pk=pk)

    def _respond(self, request, pk, patient=None):
        request.session[self.session_key(pk)] = self.history.to_state()
        body = {'history': self.history.to_state()}
        if patient is not None:
            body['patient'] = patient_to_api(patient)
        return JsonResponse(body)

    def get(self, request, pk):
        patient = fetch_one(lambda: self.client.get_patient(pk), 'patient')
        self.history = HistoryFilter(patient_pk=pk)
        self.history.load_all(self.client)
        return self._respond(request, pk, patient)

    def post(self, request, pk):
        data = json_body(request)
        self.history = self._load_filter(request, pk)
        action = data.get('action')

        if action == 'date_range':
            self.history.apply_date_range(self.client, data.get('startDate', ''), data.get('endDate', ''))
        elif action == 'older_than':
            self.history.load_older_than(self.client)
        elif action == 'clear':
            self.history.clear(self.client)
        else:
            raise ValidationError(message=f'Unknown action: {action!r}', code='UNKNOWN_ACTION')

        return self._respond(request, pk)


# ── medicines ──────────────────────────────────────────────────────────────

@method_decorator(csrf_exempt, name='dispatch')
class MedicineListView(BaseScreenView):
    """GET/POST /api/medicines/"""

    def get(self, request):
        medicines = fetch_list(self.client.list_medicines, 'medicines')
        return JsonResponse({'medicines': [medicine_to_api(m) for m in medicines]})

    def post(self, request):
        medicine = save_medicine(self.client, json_body(request))
        return JsonResponse({'medicine': medicine_to_api(medicine)}, status=201)


@method_decorator(csrf_exempt, name='dispatch')
class MedicineDetailView(BaseScreenView):
    """GET/PUT/DELETE /api/medicines/<pk>/"""

    def get(self, request, pk):
        medicine = fetch_one(lambda: self.client.get_medicine(pk), 'medicine')
        return JsonResponse({'medicine': medicine_to_api(medicine)})

    def put(self, request, pk):
        medicine = save_medicine(self.client, json_body(request), pk=pk)
        return JsonResponse({'medicine': medicine_to_api(medicine)})

    def delete(self, request, pk):
        delete_record(lambda: self.client.delete_medicine(pk), 'medicine', pk, is_confirmed(request))
        return JsonResponse({'deleted': True, 'id': pk})


# ── prescriptions ──────────────────────────────────────────────────────────

@method_decorator(csrf_exempt, name='dispatch')
class PrescriptionListView(BaseScreenView):
    """GET /api/prescriptions/"""

    def get(self, request):
        prescriptions = fetch_list(self.client.list_prescriptions, 'prescriptions')
        return JsonResponse({'prescriptions': [serialize_prescription(p) for p in prescriptions]})


@method_decorator(csrf_exempt, name='dispatch')
class PrescriptionDetailView(BaseScreenView):
    """GET/DELETE /api/prescriptions/<pk>/"""

    def get(self, request, pk):
        prescription, patient = get_prescription_with_patient(self.client, pk)
        return JsonResponse({
            'prescription': serialize_prescription(prescription),
            'patient': patient_to_api(patient) if patient is not None else None,
        })

    def delete(self, request, pk):
        delete_record(lambda: self.client.delete_prescription(pk), 'prescription', pk, is_confirmed(request))
        return JsonResponse({'deleted': True, 'id': pk})


def serialize_composer(composer):
    pending = composer.pending
    state = prescription_to_api(composer.build())
    state.update({
        'prescriptionPk': composer.prescription_pk,
        'pending': {
            'medicineId': pending.medicine_id,
            'medicineName': pending.medicine_name,
            'dosage': pending.dosage,
            'frequency': pending.frequency,
            'duration': pending.duration,
        },
        'medicineOptions': [medicine_to_api(m) for m in composer.active_medicines()],
    })
    return state


@method_decorator(csrf_exempt, name='dispatch')
class PrescriptionComposeView(BaseScreenView):
    """
    GET  /api/prescriptions/compose/          - start a new draft
    GET  /api/prescriptions/<pk>/compose/     - start an edit draft
    POST (either path)                        - {"action": ..., ...} applied to the session draft
    """

    composer = None

    def session_key(self, pk):
        return f'composer:{pk}' if pk is not None else 'composer:new'

    def get_error_state(self):
        return serialize_composer(self.composer) if self.composer is not None else None

    def get(self, request, pk=None):
        self.composer, patients = prepare_composer(self.client, pk)
        request.session[self.session_key(pk)] = self.composer.to_state()
        return JsonResponse({
            'draft': serialize_composer(self.composer),
            'patients': [patient_to_api(p) for p in patients],
        })

    def post(self, request, pk=None):
        data = json_body(request)
        key = self.session_key(pk)
        state = request.session.get(key)
        if state is None:
            self.composer, _ = prepare_composer(self.client, pk)
        else:
            self.composer = PrescriptionComposer.from_state(state)

        action = data.get('action')
        try:
            if action == 'submit':
                saved = self.composer.submit(self.client)
                request.session.pop(key, None)
                self.composer = None
                return JsonResponse(
                    {'prescription': serialize_prescription(saved)},
                    status=200 if pk is not None else 201,
                )
            if action == 'discard':
                request.session.pop(key, None)
                self.composer = None
                return JsonResponse({'discarded': True})
            self._apply(action, data)
        finally:
            if self.composer is not None:
                request.session[key] = self.composer.to_state()

        return JsonResponse({'draft': serialize_composer(self.composer)})

    def _apply(self, action, data):
        composer = self.composer
        if action == 'select_medicine':
            composer.select_medicine(data.get('medicineId'))
        elif action == 'update_pending':
            fields = {
                name: data[key]
                for key, name in (('medicineId', 'medicine_id'), ('dosage', 'dosage'),
                                  ('frequency', 'frequency'), ('duration', 'duration'))
                if key in data
            }
            composer.update_pending(**fields)
        elif action == 'update_header':
            fields = {
                name: data[key]
                for key, name in (('patientId', 'patient_id'), ('visitDate', 'visit_date'),
                                  ('notes', 'notes'))
                if key in data
            }
            composer.update_header(**fields)
        elif action == 'add_item':
            composer.add_item()
        elif action == 'remove_item':
            try:
                index = int(data.get('index'))
            except (TypeError, ValueError):
                raise ValidationError(message='Item index must be a number', code='INVALID_INDEX')
            composer.remove_item(index)
        else:
            raise ValidationError(message=f'Unknown action: {action!r}', code='UNKNOWN_ACTION')


@method_decorator(csrf_exempt, name='dispatch')
class PrescriptionDocumentView(BaseScreenView):
    """
    GET /api/prescriptions/<pk>/print/     - HTML print preview
    GET /api/prescriptions/<pk>/download/  - paginated text attachment
    """

    kind = 'print'

    def get(self, request, pk):
        prescription, patient = get_prescription_with_patient(self.client, pk)
        document = get_renderer(self.kind).render(build_view_model(prescription, patient))

        response = HttpResponse(document.content, content_type=document.content_type)
        if document.filename:
            response['Content-Disposition'] = f'attachment; filename="{document.filename}"'
        return response
