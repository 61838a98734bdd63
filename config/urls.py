# config/urls.py
from django.urls import path, include

from drf_spectacular.views import SpectacularAPIView

urlpatterns = [
    path("", include("commons.urls")),
    path("api/v1/fiscal/", include(("fiscal.urls", "fiscal"), namespace="fiscal")),
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
]
