from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ValidationViewSet

router = DefaultRouter()
router.register(r'validation', ValidationViewSet, basename='validation')

urlpatterns = [
    path('', include(router.urls)),
]
