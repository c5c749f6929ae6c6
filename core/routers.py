"""
URL mappings for the posyandu backend API.

Trailing slashes are omitted to match the front-end's fetch paths.
"""
from django.urls import path, include

from .auth_views import login_view, jwt_refresh_view, jwt_logout_view
from .views import health
from .views.clinical import assess_measurement
from .views.dashboard import dashboard
from .views.immunizations import immunizations
from .views.patients import patients, patients_batch, patient_detail
from .views.schedules import announcements, schedules, schedule_detail
from .views.visits import visits, visit_detail


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    # Dashboard
    path('api/dashboard', dashboard, name='dashboard'),
    # Patients
    path('api/patients', patients, name='patients'),
    path('api/patients/batch', patients_batch, name='patients_batch'),
    path('api/patients/<uuid:pk>', patient_detail, name='patient_detail'),
    # Visits
    path('api/visits', visits, name='visits'),
    path('api/visits/<int:pk>', visit_detail, name='visit_detail'),
    # Immunizations
    path('api/immunizations', immunizations, name='immunizations'),
    # Clinical assessment
    path('api/clinical/assess', assess_measurement, name='clinical_assess'),
    # Public site
    path('api/schedules', schedules, name='schedules'),
    path('api/schedules/<int:pk>', schedule_detail, name='schedule_detail'),
    path('api/announcements', announcements, name='announcements'),
]
