from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User

@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'role', 'trust_score', 'trust_level', 'is_banned', 'is_staff')
    list_filter = ('role', 'is_banned', 'is_staff', 'is_superuser', 'is_active')
    search_fields = ('username', 'email', 'display_name', 'first_name', 'last_name')
    fieldsets = UserAdmin.fieldsets + (
        ('Profile', {'fields': ('display_name', 'phone', 'email_verified', 'phone_verified', 'id_verified')}),
        ('Platform role', {'fields': ('role', 'role_assigned_at', 'admin_community')}),
        ('Trust score', {'fields': ('trust_score', 'trust_level', 'trust_badge', 'trust_updated_at')}),
        ('Ban', {'fields': ('is_banned', 'ban_reason', 'banned_at', 'banned_by', 'ban_duration', 'unbanned_at', 'unbanned_by')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Profile', {'fields': ('email', 'display_name')}),
    )
    # Written by the role, ban and trust score services
    readonly_fields = (
        'role', 'role_assigned_at', 'admin_community',
        'trust_score', 'trust_level', 'trust_badge', 'trust_updated_at',
        'is_banned', 'ban_reason', 'banned_at', 'banned_by', 'ban_duration', 'unbanned_at', 'unbanned_by',
    )
