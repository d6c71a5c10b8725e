from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Establishment',
            fields=[
                ('id', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('name', models.CharField(blank=True, max_length=255)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('timezone', models.CharField(default='Europe/Brussels', max_length=64)),
                ('delivery_enabled', models.BooleanField(default=True)),
            ],
        ),
        migrations.CreateModel(
            name='DeliveryRound',
            fields=[
                ('id', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('establishment_id', models.CharField(db_index=True, max_length=64)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('ready', 'Ready'), ('in_progress', 'In progress'), ('completed', 'Completed')], default='pending', max_length=20)),
                ('driver_id', models.CharField(blank=True, max_length=64, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
        ),
        migrations.CreateModel(
            name='SlotBucket',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('establishment_id', models.CharField(max_length=64)),
                ('slot_date', models.DateField()),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('slot_type', models.CharField(max_length=20)),
                ('occupancy', models.PositiveIntegerField(default=0)),
                ('capacity', models.PositiveIntegerField(default=0)),
            ],
            options={
                'unique_together': {('establishment_id', 'slot_date', 'start_time', 'end_time', 'slot_type')},
            },
        ),
        migrations.CreateModel(
            name='SlotConfiguration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slot_duration_min', models.PositiveIntegerField(default=15)),
                ('slot_duration_max', models.PositiveIntegerField(default=30)),
                ('auto_adapt', models.BooleanField(default=True)),
                ('threshold_low', models.PositiveIntegerField(default=5)),
                ('threshold_high', models.PositiveIntegerField(default=10)),
                ('max_orders_per_slot', models.PositiveIntegerField(default=8)),
                ('min_advance_minutes', models.PositiveIntegerField(default=15)),
                ('max_advance_hours', models.PositiveIntegerField(default=4)),
                ('buffer_minutes', models.PositiveIntegerField(default=5)),
                ('establishment', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='slot_configuration', to='scheduling.establishment')),
            ],
        ),
        migrations.CreateModel(
            name='OpeningHours',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('weekday', models.PositiveSmallIntegerField(help_text='0=Monday .. 6=Sunday')),
                ('open_time', models.TimeField()),
                ('close_time', models.TimeField()),
                ('establishment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='opening_hours', to='scheduling.establishment')),
            ],
            options={
                'ordering': ['weekday', 'open_time'],
            },
        ),
        migrations.CreateModel(
            name='DayOverride',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day', models.DateField()),
                ('closed', models.BooleanField(default=False)),
                ('open_time', models.TimeField(blank=True, null=True)),
                ('close_time', models.TimeField(blank=True, null=True)),
                ('max_orders', models.PositiveIntegerField(blank=True, null=True)),
                ('establishment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='day_overrides', to='scheduling.establishment')),
            ],
            options={
                'unique_together': {('establishment', 'day')},
            },
        ),
        migrations.CreateModel(
            name='DeliveryZone',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('max_distance_km', models.FloatField()),
                ('delivery_fee', models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                ('min_order_amount', models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                ('is_active', models.BooleanField(default=True)),
                ('establishment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='delivery_zones', to='scheduling.establishment')),
            ],
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('establishment_id', models.CharField(db_index=True, max_length=64)),
                ('order_type', models.CharField(choices=[('pickup', 'Pickup'), ('delivery', 'Delivery'), ('immediate', 'Immediate')], default='pickup', max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('preparing', 'Preparing'), ('ready', 'Ready'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('slot_start', models.DateTimeField(blank=True, null=True)),
                ('slot_end', models.DateTimeField(blank=True, null=True)),
                ('kitchen_launch_at', models.DateTimeField(blank=True, null=True)),
                ('estimated_prep_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('priority_score', models.IntegerField(default=0)),
                ('delivery_address', models.TextField(blank=True, null=True)),
                ('delivery_lat', models.FloatField(blank=True, null=True)),
                ('delivery_lng', models.FloatField(blank=True, null=True)),
                ('estimated_travel_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('delivery_round', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to='scheduling.deliveryround')),
            ],
        ),
        migrations.CreateModel(
            name='SlotReservation',
            fields=[
                ('id', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('order_id', models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ('status', models.CharField(choices=[('reserved', 'Reserved'), ('cancelled', 'Cancelled')], default='reserved', max_length=20)),
                ('delivery_address', models.TextField(blank=True, null=True)),
                ('delivery_lat', models.FloatField(blank=True, null=True)),
                ('delivery_lng', models.FloatField(blank=True, null=True)),
                ('travel_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('bucket', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='scheduling.slotbucket')),
            ],
        ),
        migrations.CreateModel(
            name='DeliveryRoundStop',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence', models.PositiveSmallIntegerField()),
                ('travel_minutes_from_previous', models.PositiveIntegerField(default=0)),
                ('delivery_round', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stops', to='scheduling.deliveryround')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='round_stops', to='scheduling.order')),
            ],
            options={
                'ordering': ['sequence'],
            },
        ),
    ]
