from django.urls import path
from .views import (
    CommunityHelpRequestListCreateView,
    CommunityUserReportView,
    HelpRequestDetailView,
    HelpRequestClaimView,
    HelpRequestMarkDoneView,
    HelpRequestCompleteView,
    HelpRequestRateView,
    HelpRequestFeatureView,
)

urlpatterns = [
    path(
        "communities/<int:community_id>/requests/",
        CommunityHelpRequestListCreateView.as_view(),
        name="community-help-requests",
    ),
    path(
        "communities/<int:community_id>/reports/",
        CommunityUserReportView.as_view(),
        name="community-user-reports",
    ),
    path("requests/<int:pk>/", HelpRequestDetailView.as_view(), name="help-request-detail"),
    path("requests/<int:pk>/claim/", HelpRequestClaimView.as_view(), name="help-request-claim"),
    path("requests/<int:pk>/done/", HelpRequestMarkDoneView.as_view(), name="help-request-done"),
    path("requests/<int:pk>/complete/", HelpRequestCompleteView.as_view(), name="help-request-complete"),
    path("requests/<int:pk>/rate/", HelpRequestRateView.as_view(), name="help-request-rate"),
    path("requests/<int:pk>/feature/", HelpRequestFeatureView.as_view(), name="help-request-feature"),
]
