from django.urls import path
from .views import (
    CommunityListCreateView,
    CommunityDetailView,
    SetDefaultCommunityView,
    CommunityMemberRemoveView,
    CommunityAdminLogView,
    CommunityJoinRequestView,
    MyJoinRequestView,
    JoinRequestApproveView,
    JoinRequestRejectView,
    JoinRequestCancelView,
    UserRoleView,
    UserBanView,
)


urlpatterns = [
    path("communities/", CommunityListCreateView.as_view(), name="communities-list-create"),
    path("communities/<int:community_id>/", CommunityDetailView.as_view(), name="community-detail"),
    path(
        "communities/<int:community_id>/set_default/",
        SetDefaultCommunityView.as_view(),
        name="community-set-default",
    ),
    path(
        "communities/<int:community_id>/members/<int:user_id>/remove/",
        CommunityMemberRemoveView.as_view(),
        name="community-member-remove",
    ),
    path(
        "communities/<int:community_id>/admin-logs/",
        CommunityAdminLogView.as_view(),
        name="community-admin-logs",
    ),

    # Join requests
    path(
        "communities/<int:community_id>/join-requests/",
        CommunityJoinRequestView.as_view(),
        name="community-join-requests",
    ),
    path(
        "communities/<int:community_id>/join-requests/me/",
        MyJoinRequestView.as_view(),
        name="community-join-request-me",
    ),
    path("join-requests/<int:pk>/", JoinRequestCancelView.as_view(), name="join-request-cancel"),
    path("join-requests/<int:pk>/approve/", JoinRequestApproveView.as_view(), name="join-request-approve"),
    path("join-requests/<int:pk>/reject/", JoinRequestRejectView.as_view(), name="join-request-reject"),

    # Roles & bans
    path("users/<int:user_id>/role/", UserRoleView.as_view(), name="user-role"),
    path("users/<int:user_id>/ban/", UserBanView.as_view(), name="user-ban"),
]
