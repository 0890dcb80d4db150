"""Admin views for conference pricing: custom fees, usage, registrations."""

import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.conferences import services
from apps.conferences.models import Conference, CustomRegistrationFee, Registration
from apps.conferences.vat import price_breakdown
from core.permissions import IsConferenceAdmin

from .serializers import (
    CustomRegistrationFeeSerializer,
    PriceBreakdownSerializer,
    PricePreviewSerializer,
    RegistrationFeeWriteSerializer,
    RegistrationSerializer,
    ReorderFeesSerializer,
)

logger = logging.getLogger(__name__)


class ConferenceScopedMixin:
    """Resolve the conference from the ``conference_id`` URL kwarg."""

    def get_conference(self):
        if not hasattr(self, '_conference'):
            self._conference = get_object_or_404(Conference, id=self.kwargs['conference_id'])
        return self._conference


class RegistrationFeeViewSet(ConferenceScopedMixin, viewsets.GenericViewSet):
    """
    🚀 ENTERPRISE: Custom registration fees of one conference.

    Writes go through ``apps.conferences.services`` so net/gross are always
    derived the same way and ``sold_count`` is never overwritten.
    """
    serializer_class = CustomRegistrationFeeSerializer
    permission_classes = [IsConferenceAdmin]
    lookup_url_kwarg = 'fee_id'

    def get_queryset(self):
        return CustomRegistrationFee.objects.filter(conference=self.get_conference())

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['today'] = timezone.localdate()
        return context

    def list(self, request, *args, **kwargs):
        fees = services.get_fees_for_admin(self.get_conference())
        serializer = self.get_serializer(fees, many=True)
        return Response({'fees': serializer.data}, headers={'Cache-Control': 'no-store, max-age=0'})

    def retrieve(self, request, *args, **kwargs):
        return Response({'fee': self.get_serializer(self.get_object()).data})

    @extend_schema(request=RegistrationFeeWriteSerializer, responses={201: CustomRegistrationFeeSerializer})
    def create(self, request, *args, **kwargs):
        conference = self.get_conference()
        write = RegistrationFeeWriteSerializer(data=request.data)
        write.is_valid(raise_exception=True)
        fee = services.create_registration_fee(conference, write.validated_data)
        return Response({'fee': self.get_serializer(fee).data}, status=status.HTTP_201_CREATED)

    @extend_schema(request=RegistrationFeeWriteSerializer, responses={200: CustomRegistrationFeeSerializer})
    def partial_update(self, request, *args, **kwargs):
        fee = self.get_object()
        write = RegistrationFeeWriteSerializer(fee, data=request.data, partial=True)
        write.is_valid(raise_exception=True)
        # Only what the client sent; serializer defaults must not reset untouched columns
        data = {key: value for key, value in write.validated_data.items() if key in request.data}
        fee = services.update_registration_fee(fee, data)
        return Response({'fee': self.get_serializer(fee).data})

    def destroy(self, request, *args, **kwargs):
        detached = services.delete_registration_fee(self.get_object())
        return Response({'success': True, 'detached_registrations': detached})

    @extend_schema(request=ReorderFeesSerializer)
    @action(detail=False, methods=['post'])
    def reorder(self, request, *args, **kwargs):
        serializer = ReorderFeesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        conference = self.get_conference()
        updated = services.reorder_registration_fees(conference, serializer.validated_data['fee_ids'])
        logger.info(f"[FEES] Reordered {updated} fee(s) for conference {conference.id} by user {request.user.pk}")
        return Response({'success': True, 'updated': updated})


class FeeUsageView(ConferenceScopedMixin, APIView):
    """Registrations currently holding a slot, per custom fee."""
    permission_classes = [IsConferenceAdmin]

    def get(self, request, *args, **kwargs):
        usage = services.get_fee_usage(self.get_conference())
        return Response({'usage': usage})


class RegistrationViewSet(ConferenceScopedMixin, mixins.ListModelMixin,
                          mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = RegistrationSerializer
    permission_classes = [IsConferenceAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status', 'registration_fee', 'is_student']

    def get_queryset(self):
        return Registration.objects.filter(conference=self.get_conference()).select_related('registration_fee')

    @action(detail=True, methods=['post'])
    def cancel(self, request, *args, **kwargs):
        registration = services.cancel_registration(self.get_object())
        return Response(self.get_serializer(registration).data)


class PricePreviewView(APIView):
    """Gross/net preview for the fee editor. Pure math, nothing is stored."""
    permission_classes = [IsConferenceAdmin]

    @extend_schema(request=PricePreviewSerializer, responses={200: PriceBreakdownSerializer})
    def post(self, request, *args, **kwargs):
        serializer = PricePreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        breakdown = price_breakdown(
            serializer.validated_data['amount'],
            serializer.validated_data.get('vat_percentage'),
            amount_is_gross=serializer.validated_data['amount_is_gross'],
        )
        return Response(PriceBreakdownSerializer(breakdown).data)
