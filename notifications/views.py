"""Notification inbox endpoints for the authenticated user."""

from django.http import Http404
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import generics
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Notification
from .serializers import NotificationSerializer
from .services import mark_read


class NotificationListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = NotificationSerializer

    def get_queryset(self):
        qs = Notification.objects.filter(user_id=self.request.user.id)
        unread = self.request.query_params.get("unread")
        if unread in {"1", "true", "True"}:
            qs = qs.filter(is_read=False)
        return qs

    @extend_schema(
        tags=["Notifications"],
        summary="List notifications",
        parameters=[OpenApiParameter(name="unread", description="Only unread when true", required=False, type=str)],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class NotificationReadView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Notifications"], summary="Mark notification as read", responses=NotificationSerializer)
    def post(self, request, notification_id: int):
        try:
            notification = mark_read(user=request.user, notification_id=notification_id)
        except Notification.DoesNotExist:
            raise Http404
        return Response(NotificationSerializer(notification).data)
