"""
URL configuration for the fleetcheck project.
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.shortcuts import redirect

urlpatterns = [
    # Admin interface
    path('admin/', admin.site.urls),

    # API endpoints
    path('api/', include('apps.api.urls')),

    # Root redirect
    path('', lambda request: redirect('api:swagger-ui')),
]

if settings.DEBUG:
    # Debug toolbar
    if 'debug_toolbar' in settings.INSTALLED_APPS:
        import debug_toolbar
        urlpatterns = [
            path('__debug__/', include(debug_toolbar.urls)),
        ] + urlpatterns

# Custom error handlers
handler404 = 'apps.api.error_handlers.handler404'
handler500 = 'apps.api.error_handlers.handler500'
handler403 = 'apps.api.error_handlers.handler403'
