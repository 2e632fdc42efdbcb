"""Order routes: ``orders/``, ``orders/{pk}/``, ``history/`` and ``status/``."""

from rest_framework.routers import SimpleRouter

from modules.orders.views import OrderViewSet

router = SimpleRouter()
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls
