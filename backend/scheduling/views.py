import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from delivery.rounds import commit_round
from kitchen.scheduler import LaunchTicker
from orders.state import OrderStateException
from routing.geocoding_client import GeocodingClient, GeocodingError
from routing.zones import check_deliverable
from slots.models import SLOT_FULL, SlotType

from .serializers import (
    AvailableSlotsQuerySerializer,
    CancelReservationSerializer,
    ClusterSerializer,
    CommitRoundSerializer,
    DeliveryCheckSerializer,
    DeliveryQuoteSerializer,
    DeliveryRoundSerializer,
    EstablishmentQuerySerializer,
    KitchenStatusSerializer,
    LaunchRunReportSerializer,
    RecalculateSerializer,
    ReserveSlotSerializer,
    SlotAvailabilitySerializer,
)
from .services import build_services

logger = logging.getLogger(__name__)


class SlotViewSet(viewsets.ViewSet):
    """
    Slot availability and booking.
    - available: bookable windows for a date and type
    - reserve:   take one spot (409 when the slot is full)
    - cancel:    release by reservation id or order id
    """

    @action(detail=False, methods=['get'])
    def available(self, request):
        query = AvailableSlotsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        availability = build_services().generator.available_slots(
            params['establishment_id'],
            slot_date=params.get('date'),
            slot_type=SlotType(params['type']),
            travel_minutes=params['travel_minutes'],
        )
        return Response(SlotAvailabilitySerializer(availability).data)

    @action(detail=False, methods=['post'])
    def reserve(self, request):
        serializer = ReserveSlotSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        destination = None
        if data.get('latitude') is not None:
            destination = (data['latitude'], data['longitude'])

        try:
            result = build_services().booking.reserve_slot(
                data['establishment_id'],
                data['start'],
                data['end'],
                SlotType(data['type']),
                order_id=data.get('order_id'),
                delivery_address=data.get('delivery_address') or None,
                destination=destination,
                travel_minutes=data.get('travel_minutes'),
            )
        except KeyError:
            return Response({"error": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        except OrderStateException as exc:
            return Response({"error": str(exc)}, status=status.HTTP_409_CONFLICT)

        if not result.success:
            return Response(
                {"error": result.reason or SLOT_FULL, "detail": "This slot is full, please choose another one"},
                status=status.HTTP_409_CONFLICT,
            )

        return Response(
            {
                "reservation_id": result.reservation.id,
                "order_id": result.reservation.order_id,
                "kitchen_launch_at": result.kitchen_launch_at,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=['post'])
    def cancel(self, request):
        serializer = CancelReservationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cancelled = build_services().booking.cancel(
            reservation_id=serializer.validated_data.get('reservation_id'),
            order_id=serializer.validated_data.get('order_id'),
        )
        return Response({"cancelled": cancelled})


class DeliveryViewSet(viewsets.ViewSet):
    """
    Delivery grouping and deliverability.
    - clusters: current proposal (nothing is stored)
    - rounds:   commit a proposal (or any hand-picked set) as a round
    - check:    is this address inside a delivery zone, and how far
    """

    @action(detail=False, methods=['get'])
    def clusters(self, request):
        query = EstablishmentQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = build_services().clusterer.clusters_for(query.validated_data['establishment_id'])
        return Response({
            "current_prep_minutes": result.current_prep_minutes,
            "clusters": ClusterSerializer(result.clusters, many=True).data,
            "excluded_order_ids": [o.id for o in result.excluded_orders],
        })

    @action(detail=False, methods=['post'])
    def rounds(self, request):
        serializer = CommitRoundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        services = build_services()
        try:
            delivery_round = commit_round(
                data['order_ids'],
                establishment_id=data['establishment_id'],
                order_store=services.order_store,
                round_store=services.round_store,
                driver_id=data.get('driver_id'),
                policy=services.clusterer.policy,
            )
        except KeyError:
            return Response({"error": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
        except OrderStateException as exc:
            return Response({"error": str(exc)}, status=status.HTTP_409_CONFLICT)
        except ValueError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(DeliveryRoundSerializer(delivery_round).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def check(self, request):
        serializer = DeliveryCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        establishment = build_services().registry.get(data['establishment_id'])

        if data.get('latitude') is not None:
            destination = (data['latitude'], data['longitude'])
        else:
            try:
                destination = GeocodingClient().geocode(data['address']).coordinates
            except ValueError as exc:
                logger.error("Geocoding is not configured: %s", exc)
                return Response({"error": "Geocoding unavailable"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
            except GeocodingError as exc:
                return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        quote = check_deliverable(establishment, destination)
        payload = DeliveryQuoteSerializer(quote).data
        payload["latitude"], payload["longitude"] = destination
        return Response(payload)


class KitchenViewSet(viewsets.ViewSet):
    """
    Kitchen launch scheduling.
    - recalculate: run the launch scheduler now (idempotent)
    - status:      read-only snapshot of scheduled orders
    """

    @action(detail=False, methods=['post'])
    def recalculate(self, request):
        serializer = RecalculateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        services = build_services()
        establishment_id = serializer.validated_data.get('establishment_id')
        if establishment_id:
            reports = [services.scheduler.run(establishment_id)]
        else:
            # one failing establishment is logged and skipped
            reports = LaunchTicker(services.scheduler, services.establishment_ids).tick()
        return Response({"reports": LaunchRunReportSerializer(reports, many=True).data})

    @action(detail=False, methods=['get'], url_path='status')
    def kitchen_status(self, request):
        query = EstablishmentQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        snapshot = build_services().scheduler.status(query.validated_data['establishment_id'])
        return Response(KitchenStatusSerializer(snapshot).data)
