from django.urls import path
from .views import (
    MedicineDetailView,
    MedicineListView,
    PatientDetailView,
    PatientHistoryView,
    PatientListView,
    PrescriptionComposeView,
    PrescriptionDetailView,
    PrescriptionDocumentView,
    PrescriptionListView,
)

urlpatterns = [
    path('patients/', PatientListView.as_view(), name='patient-list'),
    path('patients/<int:pk>/', PatientDetailView.as_view(), name='patient-detail'),
    path('patients/<int:pk>/history/', PatientHistoryView.as_view(), name='patient-history'),
    path('medicines/', MedicineListView.as_view(), name='medicine-list'),
    path('medicines/<int:pk>/', MedicineDetailView.as_view(), name='medicine-detail'),
    path('prescriptions/', PrescriptionListView.as_view(), name='prescription-list'),
    path('prescriptions/compose/', PrescriptionComposeView.as_view(), name='prescription-compose'),
    path('prescriptions/<int:pk>/', PrescriptionDetailView.as_view(), name='prescription-detail'),
    path('prescriptions/<int:pk>/compose/', PrescriptionComposeView.as_view(), name='prescription-edit'),
    path('prescriptions/<int:pk>/print/', PrescriptionDocumentView.as_view(kind='print'), name='prescription-print'),
    path('prescriptions/<int:pk>/download/', PrescriptionDocumentView.as_view(kind='download'), name='prescription-download'),
]
