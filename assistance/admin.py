from django.contrib import admin
from .models import HelpRequest, UserReport

@admin.register(HelpRequest)
class HelpRequestAdmin(admin.ModelAdmin):
    list_display = ('title', 'community', 'created_by', 'volunteer', 'urgency', 'status', 'is_featured', 'created_at')
    list_filter = ('status', 'urgency', 'is_featured', 'community')
    search_fields = ('title', 'description', 'created_by__username', 'volunteer__username')

@admin.register(UserReport)
class UserReportAdmin(admin.ModelAdmin):
    list_display = ('reported_user', 'reported_by', 'community', 'created_at')
    list_filter = ('community',)
    search_fields = ('reported_user__username', 'reason')
