from __future__ import annotations

from typing import cast

from django.db.models import QuerySet
from rest_framework.permissions import IsAuthenticated
from rest_framework.serializers import BaseSerializer
from rest_framework.viewsets import ModelViewSet

from .models import VineyardBlock
from .permissions import IsBlockOwner
from .serializers import VineyardBlockSerializer


class VineyardBlockViewSet(ModelViewSet):
    """Owner-scoped block records; geometry feeds the NDVI orchestrator."""

    serializer_class = VineyardBlockSerializer
    permission_classes = [IsAuthenticated, IsBlockOwner]

    def get_queryset(self) -> QuerySet[VineyardBlock]:
        user_id = getattr(self.request.user, "id", None)
        if user_id is None:
            return VineyardBlock.objects.none()
        return VineyardBlock.objects.filter(
            owner_id=cast(int, user_id)
        ).order_by("name")

    def perform_create(self, serializer: BaseSerializer[VineyardBlock]) -> None:
        serializer.save(owner=self.request.user)
