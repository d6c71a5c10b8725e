from django.db import models
from django.utils import timezone


class Establishment(models.Model):
    """
    A kitchen that takes pickup and delivery orders.
    Identified by the same string id the order-management side uses.
    """
    id = models.CharField(max_length=64, primary_key=True)
    name = models.CharField(max_length=255, blank=True)

    # Origin of every delivery distance
    latitude = models.FloatField(blank=True, null=True)
    longitude = models.FloatField(blank=True, null=True)

    timezone = models.CharField(max_length=64, default="Europe/Brussels")
    delivery_enabled = models.BooleanField(default=True)

    def __str__(self):
        return self.name or self.id


class SlotConfiguration(models.Model):
    """
    Slot tuning for one establishment. Missing row = documented defaults.
    """
    establishment = models.OneToOneField(Establishment, on_delete=models.CASCADE, related_name='slot_configuration')

    slot_duration_min = models.PositiveIntegerField(default=15)
    slot_duration_max = models.PositiveIntegerField(default=30)
    auto_adapt = models.BooleanField(default=True)
    threshold_low = models.PositiveIntegerField(default=5)
    threshold_high = models.PositiveIntegerField(default=10)
    max_orders_per_slot = models.PositiveIntegerField(default=8)
    min_advance_minutes = models.PositiveIntegerField(default=15)
    max_advance_hours = models.PositiveIntegerField(default=4)
    buffer_minutes = models.PositiveIntegerField(default=5)

    def __str__(self):
        return f"Slots for {self.establishment_id}"


class OpeningHours(models.Model):
    """
    Weekly opening period. Several rows per weekday = split service (lunch / dinner).
    """
    establishment = models.ForeignKey(Establishment, on_delete=models.CASCADE, related_name='opening_hours')
    weekday = models.PositiveSmallIntegerField(help_text="0=Monday .. 6=Sunday")
    open_time = models.TimeField()
    close_time = models.TimeField()

    class Meta:
        ordering = ['weekday', 'open_time']


class DayOverride(models.Model):
    """
    Holiday closure or special hours / capacity for one date.
    """
    establishment = models.ForeignKey(Establishment, on_delete=models.CASCADE, related_name='day_overrides')
    day = models.DateField()
    closed = models.BooleanField(default=False)
    open_time = models.TimeField(blank=True, null=True)
    close_time = models.TimeField(blank=True, null=True)
    max_orders = models.PositiveIntegerField(blank=True, null=True)

    class Meta:
        unique_together = ('establishment', 'day')


class DeliveryZone(models.Model):
    establishment = models.ForeignKey(Establishment, on_delete=models.CASCADE, related_name='delivery_zones')
    name = models.CharField(max_length=100)
    max_distance_km = models.FloatField()
    delivery_fee = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    min_order_amount = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.name} ({self.max_distance_km} km)"


class DeliveryRound(models.Model):
    """
    A committed group of delivery orders for one driver trip.
    """
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        READY = "ready", "Ready"
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"

    id = models.CharField(max_length=64, primary_key=True)
    establishment_id = models.CharField(max_length=64, db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    driver_id = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"Round {self.id} - {self.status}"


class Order(models.Model):
    """
    The scheduling view of an order.
    Lifecycle: pending -> confirmed -> preparing -> ready -> completed (or cancelled).
    Only slot, launch, prep estimate, priority, promotion and round link are
    written by the scheduling core.
    """
    class OrderType(models.TextChoices):
        PICKUP = "pickup", "Pickup"
        DELIVERY = "delivery", "Delivery"
        IMMEDIATE = "immediate", "Immediate"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        PREPARING = "preparing", "Preparing"
        READY = "ready", "Ready"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    id = models.CharField(max_length=64, primary_key=True)
    # establishments may have no configuration row yet (defaults apply)
    establishment_id = models.CharField(max_length=64, db_index=True)

    order_type = models.CharField(max_length=20, choices=OrderType.choices, default=OrderType.PICKUP)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)

    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(blank=True, null=True)

    # Committed booking window
    slot_start = models.DateTimeField(blank=True, null=True)
    slot_end = models.DateTimeField(blank=True, null=True)

    kitchen_launch_at = models.DateTimeField(blank=True, null=True)
    estimated_prep_minutes = models.PositiveIntegerField(blank=True, null=True)
    priority_score = models.IntegerField(default=0)

    # Delivery only
    delivery_address = models.TextField(blank=True, null=True)
    delivery_lat = models.FloatField(blank=True, null=True)
    delivery_lng = models.FloatField(blank=True, null=True)
    estimated_travel_minutes = models.PositiveIntegerField(blank=True, null=True)
    delivery_round = models.ForeignKey(DeliveryRound, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')

    def __str__(self):
        return f"Order #{self.id} - {self.status}"


class SlotBucket(models.Model):
    """
    Capacity counter of one (date, start, end, type) slot, in local wall-clock time.
    Created on first reservation, never deleted. occupancy <= capacity.
    """
    establishment_id = models.CharField(max_length=64)
    slot_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    slot_type = models.CharField(max_length=20)

    occupancy = models.PositiveIntegerField(default=0)
    capacity = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = ('establishment_id', 'slot_date', 'start_time', 'end_time', 'slot_type')

    def __str__(self):
        return f"{self.slot_date} {self.start_time}-{self.end_time} {self.slot_type} ({self.occupancy}/{self.capacity})"


class SlotReservation(models.Model):
    class Status(models.TextChoices):
        RESERVED = "reserved", "Reserved"
        CANCELLED = "cancelled", "Cancelled"

    id = models.CharField(max_length=64, primary_key=True)
    bucket = models.ForeignKey(SlotBucket, on_delete=models.PROTECT, related_name='reservations')
    order_id = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.RESERVED)

    delivery_address = models.TextField(blank=True, null=True)
    delivery_lat = models.FloatField(blank=True, null=True)
    delivery_lng = models.FloatField(blank=True, null=True)
    travel_minutes = models.PositiveIntegerField(blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)


class DeliveryRoundStop(models.Model):
    delivery_round = models.ForeignKey(DeliveryRound, on_delete=models.CASCADE, related_name='stops')
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='round_stops')
    sequence = models.PositiveSmallIntegerField()
    travel_minutes_from_previous = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['sequence']
