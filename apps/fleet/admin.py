from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from apps.fleet.models import DailyChecklist, Vehicle


@admin.register(Vehicle)
class VehicleAdmin(SimpleHistoryAdmin):
    list_display = ('license_plate', 'brand', 'model', 'year', 'mileage', 'updated_at')
    search_fields = ('license_plate', 'brand', 'model')
    list_filter = ('brand', 'year')
    ordering = ('brand', 'model')


@admin.register(DailyChecklist)
class DailyChecklistAdmin(SimpleHistoryAdmin):
    list_display = ('id', 'vehicle_id', 'driver_name', 'date', 'status', 'departure_mileage', 'arrival_mileage')
    list_filter = ('status', 'date')
    search_fields = ('driver_name', 'notes')
    date_hierarchy = 'date'
    readonly_fields = ('date', 'departure_timestamp', 'arrival_timestamp', 'ai_diagnosis', 'created_at', 'updated_at')
    raw_id_fields = ('vehicle', 'driver')

    # Status and mileage transitions belong to the checklist service.
    def has_add_permission(self, request):
        return False
