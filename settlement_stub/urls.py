from django.urls import path
from .views import instructions


urlpatterns = [
	path("instructions", instructions),
]
