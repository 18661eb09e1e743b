from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from core.views import HealthCheckView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token-obtain-pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('api/users/', include('users.urls')),
    path('api/core/', include('core.urls')),
    path('api/gamification/', include('gamification.urls')),
    path('api/assistance/', include('assistance.urls')),
    path("api/health/", HealthCheckView.as_view(), name="health-check"),
]
