from django.contrib import admin

from .models import DeletionReport


@admin.register(DeletionReport)
class DeletionReportAdmin(admin.ModelAdmin):
    list_display = ['deleted_user_name', 'admin_name', 'timestamp']
    search_fields = ['deleted_user_name', 'admin_name', 'reason']
    readonly_fields = [f.name for f in DeletionReport._meta.fields]

    def has_add_permission(self, request):
        return False
