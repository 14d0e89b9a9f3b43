from __future__ import annotations

from rest_framework.routers import SimpleRouter

from .views import VineyardBlockViewSet

router = SimpleRouter()
router.register("blocks", VineyardBlockViewSet, basename="block")

urlpatterns = router.urls
