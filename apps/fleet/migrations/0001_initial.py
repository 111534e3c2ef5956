import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Vehicle',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('brand', models.CharField(max_length=100)),
                ('model', models.CharField(max_length=100)),
                ('year', models.PositiveIntegerField(help_text='Year of manufacture')),
                ('license_plate', models.CharField(help_text='License plate number', max_length=20, unique=True)),
                ('color', models.CharField(blank=True, max_length=50)),
                ('mileage', models.PositiveIntegerField(default=0, help_text='Last recorded odometer reading (km)')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Vehicle',
                'verbose_name_plural': 'Vehicles',
                'ordering': ['brand', 'model'],
            },
        ),
        migrations.CreateModel(
            name='DailyChecklist',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('driver_name', models.CharField(max_length=150)),
                ('departure_timestamp', models.DateTimeField(db_index=True)),
                ('arrival_timestamp', models.DateTimeField(blank=True, null=True)),
                ('departure_mileage', models.PositiveIntegerField()),
                ('arrival_mileage', models.PositiveIntegerField(blank=True, null=True)),
                ('checklist_values', models.JSONField(default=dict)),
                ('notes', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('pending_arrival', 'Pending arrival'), ('completed', 'Completed'), ('problem', 'Problem')], db_index=True, default='pending_arrival', max_length=20)),
                ('date', models.DateField(db_index=True)),
                ('ai_diagnosis', models.TextField(blank=True)),
                ('refuelings', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('driver', models.ForeignKey(blank=True, help_text='User who recorded the departure', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='checklists', to=settings.AUTH_USER_MODEL)),
                ('vehicle', models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name='checklists', to='fleet.vehicle')),
            ],
            options={
                'verbose_name': 'Daily checklist',
                'verbose_name_plural': 'Daily checklists',
                'ordering': ['-departure_timestamp'],
                'indexes': [
                    models.Index(fields=['vehicle', 'date'], name='fleet_chk_vehicle_date_idx'),
                    models.Index(fields=['status', 'date'], name='fleet_chk_status_date_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('arrival_mileage__isnull', True), ('arrival_mileage__gte', models.F('departure_mileage')), _connector='OR'), name='arrival_mileage_not_below_departure'),
                    models.CheckConstraint(condition=models.Q(('status__in', ['pending_arrival', 'completed', 'problem'])), name='checklist_status_valid'),
                    models.UniqueConstraint(condition=models.Q(('arrival_timestamp__isnull', True)), fields=('vehicle',), name='one_open_trip_per_vehicle'),
                ],
            },
        ),
        migrations.CreateModel(
            name='HistoricalVehicle',
            fields=[
                ('id', models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
                ('brand', models.CharField(max_length=100)),
                ('model', models.CharField(max_length=100)),
                ('year', models.PositiveIntegerField(help_text='Year of manufacture')),
                ('license_plate', models.CharField(db_index=True, help_text='License plate number', max_length=20)),
                ('color', models.CharField(blank=True, max_length=50)),
                ('mileage', models.PositiveIntegerField(default=0, help_text='Last recorded odometer reading (km)')),
                ('created_at', models.DateTimeField(blank=True, db_index=True, editable=False)),
                ('updated_at', models.DateTimeField(blank=True, editable=False)),
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=[('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')], max_length=1)),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'historical Vehicle',
                'verbose_name_plural': 'historical Vehicles',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name='HistoricalDailyChecklist',
            fields=[
                ('id', models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
                ('driver_name', models.CharField(max_length=150)),
                ('departure_timestamp', models.DateTimeField(db_index=True)),
                ('arrival_timestamp', models.DateTimeField(blank=True, null=True)),
                ('departure_mileage', models.PositiveIntegerField()),
                ('arrival_mileage', models.PositiveIntegerField(blank=True, null=True)),
                ('checklist_values', models.JSONField(default=dict)),
                ('notes', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('pending_arrival', 'Pending arrival'), ('completed', 'Completed'), ('problem', 'Problem')], db_index=True, default='pending_arrival', max_length=20)),
                ('date', models.DateField(db_index=True)),
                ('ai_diagnosis', models.TextField(blank=True)),
                ('refuelings', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(blank=True, editable=False)),
                ('updated_at', models.DateTimeField(blank=True, editable=False)),
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=[('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')], max_length=1)),
                ('driver', models.ForeignKey(blank=True, db_constraint=False, help_text='User who recorded the departure', null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('vehicle', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='fleet.vehicle')),
            ],
            options={
                'verbose_name': 'historical Daily checklist',
                'verbose_name_plural': 'historical Daily checklists',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
