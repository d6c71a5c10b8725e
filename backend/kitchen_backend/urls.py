from django.urls import path, include
from rest_framework.routers import DefaultRouter
from backend.scheduling.views import SlotViewSet, DeliveryViewSet, KitchenViewSet

router = DefaultRouter()
router.register(r'slots', SlotViewSet, basename='slots')
router.register(r'delivery', DeliveryViewSet, basename='delivery')
router.register(r'kitchen', KitchenViewSet, basename='kitchen')

urlpatterns = [
    path('api/v1/', include(router.urls)),
]
