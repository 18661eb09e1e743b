from django.contrib import admin
from .models import GamificationProfile, PointsLog

@admin.register(GamificationProfile)
class GamificationProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'points', 'level', 'requests_completed', 'average_rating', 'streak_days')
    search_fields = ('user__username',)
    readonly_fields = ('points', 'level', 'achievements')

@admin.register(PointsLog)
class PointsLogAdmin(admin.ModelAdmin):
    list_display = ('user', 'amount', 'reason', 'achievement_id', 'created_at')
    list_filter = ('reason',)
    search_fields = ('user__username', 'achievement_id')
