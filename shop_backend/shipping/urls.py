# shipping/urls.py

from django.urls import path

from shipping.views import ServiceabilityView

app_name = "shipping"

urlpatterns = [
    path("serviceability/", ServiceabilityView.as_view(), name="serviceability"),
]
