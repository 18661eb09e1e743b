from django.contrib import admin
from .models import AdminActionLog, Community, CommunityMembership, JoinRequest

@admin.register(Community)
class CommunityAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'is_active', 'member_count', 'created_by', 'created_at')
    search_fields = ('name', 'slug', 'description')
    list_filter = ('is_active', 'created_at')
    prepopulated_fields = {'slug': ('name',)}
    # Maintained by join-request approval and member removal
    readonly_fields = ('member_count',)

@admin.register(CommunityMembership)
class CommunityMembershipAdmin(admin.ModelAdmin):
    list_display = ('user', 'community', 'role', 'is_active', 'is_default', 'joined_at')
    list_filter = ('role', 'is_active', 'is_default', 'community')
    search_fields = ('user__username', 'community__name')

@admin.register(JoinRequest)
class JoinRequestAdmin(admin.ModelAdmin):
    list_display = ('user', 'community', 'status', 'created_at', 'approved_by', 'rejected_by')
    list_filter = ('status', 'community')
    search_fields = ('user__username', 'user_email', 'community__name')
    readonly_fields = ('status', 'approved_by', 'approved_at', 'rejected_by', 'rejected_at', 'rejection_reason')

@admin.register(AdminActionLog)
class AdminActionLogAdmin(admin.ModelAdmin):
    list_display = ('action', 'target_user', 'performed_by', 'community', 'timestamp')
    list_filter = ('action', 'community')
    search_fields = ('target_user__username', 'performed_by__username', 'reason')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
