from rest_framework import serializers

SLOT_TYPES = ['pickup', 'delivery']


class CoordinatesMixin:
    """
    latitude / longitude are optional but must come together.
    """

    def check_coordinates(self, attrs):
        has_lat = attrs.get('latitude') is not None
        has_lng = attrs.get('longitude') is not None
        if has_lat != has_lng:
            raise serializers.ValidationError("latitude and longitude must be given together")
        return attrs


# --- Requests ---

class AvailableSlotsQuerySerializer(serializers.Serializer):
    establishment_id = serializers.CharField(max_length=64)
    type = serializers.ChoiceField(choices=SLOT_TYPES, default='pickup')
    date = serializers.DateField(required=False)
    travel_minutes = serializers.IntegerField(min_value=0, default=0)


class ReserveSlotSerializer(CoordinatesMixin, serializers.Serializer):
    establishment_id = serializers.CharField(max_length=64)
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    type = serializers.ChoiceField(choices=SLOT_TYPES, default='pickup')
    order_id = serializers.CharField(max_length=64, required=False, allow_null=True)
    delivery_address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    latitude = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)
    travel_minutes = serializers.IntegerField(required=False, allow_null=True, min_value=0)

    def validate(self, attrs):
        if attrs['end'] <= attrs['start']:
            raise serializers.ValidationError("end must be after start")
        return self.check_coordinates(attrs)


class CancelReservationSerializer(serializers.Serializer):
    reservation_id = serializers.CharField(max_length=64, required=False)
    order_id = serializers.CharField(max_length=64, required=False)

    def validate(self, attrs):
        if not attrs.get('reservation_id') and not attrs.get('order_id'):
            raise serializers.ValidationError("reservation_id or order_id is required")
        return attrs


class EstablishmentQuerySerializer(serializers.Serializer):
    establishment_id = serializers.CharField(max_length=64)


class RecalculateSerializer(serializers.Serializer):
    # omitted = every known establishment
    establishment_id = serializers.CharField(max_length=64, required=False)


class CommitRoundSerializer(serializers.Serializer):
    establishment_id = serializers.CharField(max_length=64)
    order_ids = serializers.ListField(child=serializers.CharField(max_length=64), min_length=1)
    driver_id = serializers.CharField(max_length=64, required=False, allow_null=True)

    def validate_order_ids(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError("order_ids must be unique")
        return value


class DeliveryCheckSerializer(CoordinatesMixin, serializers.Serializer):
    establishment_id = serializers.CharField(max_length=64)
    address = serializers.CharField(required=False, allow_blank=True)
    latitude = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)

    def validate(self, attrs):
        attrs = self.check_coordinates(attrs)
        if attrs.get('latitude') is None and not attrs.get('address'):
            raise serializers.ValidationError("address or latitude/longitude is required")
        return attrs


# --- Responses (read from core dataclasses) ---

class SlotSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    label = serializers.CharField()
    spots_left = serializers.IntegerField()
    is_first_available = serializers.BooleanField()


class SlotAvailabilitySerializer(serializers.Serializer):
    slots = SlotSerializer(many=True)
    current_prep_minutes = serializers.IntegerField()
    slot_duration = serializers.IntegerField()
    travel_minutes = serializers.IntegerField()
    total_wait_minutes = serializers.IntegerField()


class ClusterSerializer(serializers.Serializer):
    key = serializers.CharField()
    order_ids = serializers.ListField(child=serializers.CharField())
    centroid = serializers.SerializerMethodField()
    total_travel_minutes = serializers.IntegerField()
    window_start = serializers.DateTimeField(source='common_window.start')
    window_end = serializers.DateTimeField(source='common_window.end')
    suggested_departure = serializers.DateTimeField()
    suggested_kitchen_launch = serializers.DateTimeField()
    current_prep_minutes = serializers.IntegerField()

    def get_centroid(self, obj):
        lat, lng = obj.centroid
        return {"latitude": lat, "longitude": lng}


class RoundStopSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    sequence = serializers.IntegerField()
    travel_minutes_from_previous = serializers.IntegerField()
    slot_start = serializers.DateTimeField()


class DeliveryRoundSerializer(serializers.Serializer):
    id = serializers.CharField()
    establishment_id = serializers.CharField()
    status = serializers.CharField(source='status.value')
    driver_id = serializers.CharField(allow_null=True)
    total_travel_minutes = serializers.IntegerField()
    stops = RoundStopSerializer(many=True)


class ScheduledOrderSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    slot_start = serializers.DateTimeField()
    kitchen_launch_at = serializers.DateTimeField(allow_null=True)
    minutes_until_launch = serializers.IntegerField(allow_null=True)
    should_launch_now = serializers.BooleanField()


class KitchenStatusSerializer(serializers.Serializer):
    establishment_id = serializers.CharField()
    current_prep_minutes = serializers.IntegerField()
    queue_size = serializers.IntegerField()
    scheduled_orders = ScheduledOrderSerializer(many=True)


class LaunchRunReportSerializer(serializers.Serializer):
    establishment_id = serializers.CharField()
    current_prep_minutes = serializers.IntegerField()
    orders_updated = serializers.IntegerField()
    orders_launched = serializers.IntegerField()
    launched_ids = serializers.ListField(child=serializers.CharField())
    failed_ids = serializers.ListField(child=serializers.CharField())


class DeliveryQuoteSerializer(serializers.Serializer):
    is_deliverable = serializers.BooleanField()
    distance_km = serializers.FloatField(allow_null=True)
    duration_minutes = serializers.IntegerField(allow_null=True)
    fee = serializers.FloatField(allow_null=True)
    zone_name = serializers.CharField(allow_null=True)
    min_order_amount = serializers.FloatField()
    reason = serializers.CharField(allow_null=True)
