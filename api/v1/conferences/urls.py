from django.urls import path, include
from rest_framework.routers import DefaultRouter, SimpleRouter

from .public_views import PublicConferenceViewSet
from .views import FeeUsageView, PricePreviewView, RegistrationFeeViewSet, RegistrationViewSet

# Public endpoints, looked up by slug
public_router = DefaultRouter()
public_router.register(r'public/conferences', PublicConferenceViewSet, basename='public-conference')

# Admin endpoints nested under a conference
conference_router = SimpleRouter()
conference_router.register(r'registration-fees', RegistrationFeeViewSet, basename='conference-registration-fee')
conference_router.register(r'registrations', RegistrationViewSet, basename='conference-registration')

urlpatterns = [
    path('', include(public_router.urls)),
    path('conferences/<uuid:conference_id>/', include(conference_router.urls)),
    path('conferences/<uuid:conference_id>/fee-usage/', FeeUsageView.as_view(), name='conference-fee-usage'),
    path('pricing/preview/', PricePreviewView.as_view(), name='pricing-preview'),
]
