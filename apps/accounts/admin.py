"""
Admin configuration for User model.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from simple_history.admin import SimpleHistoryAdmin
from .models import User


@admin.register(User)
class UserAdmin(SimpleHistoryAdmin, BaseUserAdmin):
    """
    Admin interface for User model with history tracking.

    Role changes and deletions should go through the API so the last-admin
    rule and deletion reports apply; the Django admin is for support staff.
    """
    list_display = ['username', 'name', 'email', 'role', 'is_active', 'created_at']
    list_filter = ['role', 'is_active', 'is_staff', 'created_at']
    search_fields = ['username', 'name', 'email', 'first_name', 'last_name']
    ordering = ['-created_at']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Fleet', {
            'fields': ('name', 'role', 'must_change_password', 'password_last_reset_at'),
        }),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Fleet', {
            'fields': ('name', 'role'),
        }),
    )
    readonly_fields = ['password_last_reset_at', 'created_at', 'updated_at']
