"""
API URL configuration for the fleet checklist system.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView
from .views import ChecklistViewSet, DeletionReportViewSet, ReportViewSet, UserViewSet, VehicleViewSet

app_name = 'api'

router = DefaultRouter()
router.register(r'vehicles', VehicleViewSet, basename='vehicle')
router.register(r'checklists', ChecklistViewSet, basename='checklist')
router.register(r'users', UserViewSet, basename='user')
router.register(r'deletion-reports', DeletionReportViewSet, basename='deletion-report')
router.register(r'reports', ReportViewSet, basename='report')

urlpatterns = [
    path('v1/', include(router.urls)),
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('docs/', SpectacularSwaggerView.as_view(url_name='api:schema'), name='swagger-ui'),
    path('redoc/', SpectacularRedocView.as_view(url_name='api:schema'), name='redoc'),
    path('auth/', include('rest_framework.urls')),
]
