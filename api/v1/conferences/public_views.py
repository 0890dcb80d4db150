"""Public (registrant-facing) views for conference pricing."""

from dataclasses import asdict

from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.conferences import services
from apps.conferences.models import Conference
from apps.conferences.schemes import pricing_scheme_for
from apps.conferences.tiers import get_current_pricing, tier_display_name

from .serializers import (
    CurrentPricingSerializer,
    FeeOptionSerializer,
    PublicConferenceSerializer,
    QuoteSerializer,
    RegistrationCreateSerializer,
    RegistrationSerializer,
)


class PublicConferenceViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Published conferences, looked up by slug.

    The fee list never hides unavailable fees: each one carries its status
    so the form can explain why it is disabled.
    """
    serializer_class = PublicConferenceSerializer
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    lookup_field = 'slug'

    def get_queryset(self):
        return Conference.objects.filter(is_published=True)

    def get_now(self):
        return timezone.now()

    @action(detail=True, methods=['get'], url_path='registration-fees')
    def registration_fees(self, request, slug=None):
        conference = self.get_object()
        scheme = pricing_scheme_for(conference)
        options = scheme.fee_options(self.get_now(), conference.start_date)
        return Response({
            'scheme': scheme.kind,
            'currency': conference.pricing_config.currency,
            'fees': FeeOptionSerializer(options, many=True).data,
        })

    @action(detail=True, methods=['get'])
    def pricing(self, request, slug=None):
        conference = self.get_object()
        current = get_current_pricing(conference.pricing_config, self.get_now(), conference.start_date)
        data = asdict(current)
        data['tier_name'] = tier_display_name(current.tier)
        return Response(CurrentPricingSerializer(data).data)

    @extend_schema(parameters=[
        OpenApiParameter('fee_id', str, description='Custom fee to quote'),
        OpenApiParameter('is_student', bool),
    ])
    @action(detail=True, methods=['get'])
    def quote(self, request, slug=None):
        conference = self.get_object()
        quote = services.quote_registration(
            conference,
            self.get_now(),
            fee_id=request.query_params.get('fee_id') or None,
            is_student=request.query_params.get('is_student', '').lower() in ('1', 'true', 'yes'),
        )
        return Response(QuoteSerializer(quote.as_dict()).data)

    @extend_schema(request=RegistrationCreateSerializer, responses={201: RegistrationSerializer})
    @action(detail=True, methods=['post'])
    def registrations(self, request, slug=None):
        conference = self.get_object()
        serializer = RegistrationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        registration = services.submit_registration(
            conference,
            participant=data,
            now=self.get_now(),
            fee_id=data.get('registration_fee_id'),
            is_student=data['is_student'],
        )
        return Response(RegistrationSerializer(registration).data, status=status.HTTP_201_CREATED)
