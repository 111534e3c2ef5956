"""
Tests for the REST API.

Validates:
- Role-based access on every resource
- Uniform error payloads ({"error", "status_code", "detail"})
- Departure / arrival over HTTP
- User management and the deletion audit trail
- Report endpoints, JSON and printable HTML
"""

from unittest import mock

import pytest
from django.contrib.auth.tokens import default_token_generator
from django.db import DatabaseError
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

from apps.audit.models import DeletionReport
from apps.fleet.models import DailyChecklist, Vehicle
from tests.factories import DailyChecklistFactory, UserFactory, local_datetime, values_with

VEHICLES = '/api/v1/vehicles/'
CHECKLISTS = '/api/v1/checklists/'
USERS = '/api/v1/users/'
DELETION_REPORTS = '/api/v1/deletion-reports/'
REPORTS = '/api/v1/reports/'


@pytest.fixture(autouse=True)
def open_submission_window(settings):
    # Keep HTTP departures independent of the wall clock
    settings.CHECKLIST_SUBMISSION_CUTOFF_HOUR = 24


@pytest.mark.django_db
class TestAccess:

    def test_anonymous_requests_are_rejected(self, api_client):
        response = api_client.get(VEHICLES)
        assert response.status_code == 403
        assert response.data['status_code'] == 403
        assert response.data['error'] == 'Access forbidden'

    def test_collaborator_reads_but_cannot_manage_vehicles(self, collaborator_client, vehicle):
        assert collaborator_client.get(VEHICLES).status_code == 200
        assert collaborator_client.get(f'{VEHICLES}{vehicle.pk}/').status_code == 200

        response = collaborator_client.post(VEHICLES, {
            'brand': 'Fiat', 'model': 'Uno', 'year': 2010, 'license_plate': 'UNO-0001',
        }, format='json')
        assert response.status_code == 403
        assert collaborator_client.delete(f'{VEHICLES}{vehicle.pk}/').status_code == 403

    def test_collaborator_cannot_manage_users(self, collaborator_client, admin_user):
        assert collaborator_client.get(USERS).status_code == 403
        assert collaborator_client.post(USERS, {'username': 'x'}, format='json').status_code == 403
        assert collaborator_client.get(DELETION_REPORTS).status_code == 403

    def test_inactive_user_is_rejected(self, api_client):
        user = UserFactory(is_active=False)
        api_client.force_authenticate(user=user)
        assert api_client.get(CHECKLISTS).status_code == 403


@pytest.mark.django_db
class TestVehicles:

    def test_admin_creates_vehicle(self, admin_client):
        response = admin_client.post(VEHICLES, {
            'brand': 'Fiat', 'model': 'Toro', 'year': 2021, 'license_plate': 'abc1d23', 'color': 'Red',
        }, format='json')

        assert response.status_code == 201
        assert response.data['license_plate'] == 'ABC1D23'
        assert response.data['mileage'] == 0

    def test_missing_fields_use_error_format(self, admin_client):
        response = admin_client.post(VEHICLES, {'brand': 'Fiat'}, format='json')

        assert response.status_code == 400
        assert response.data['error'] == 'Validation failed'
        assert 'license_plate' in response.data['detail']

    def test_partial_update(self, admin_client, vehicle):
        response = admin_client.patch(f'{VEHICLES}{vehicle.pk}/', {'color': 'Silver'}, format='json')
        assert response.status_code == 200
        vehicle.refresh_from_db()
        assert vehicle.color == 'Silver'

    def test_unknown_vehicle_is_404(self, admin_client):
        response = admin_client.get(f'{VEHICLES}424242/')
        assert response.status_code == 404
        assert response.data['error'] == 'Resource not found'

    def test_storage_failure_is_503(self, admin_client):
        with mock.patch(
            'apps.fleet.services.vehicle_service.save_vehicle',
            side_effect=DatabaseError("connection refused"),
        ):
            response = admin_client.post(VEHICLES, {
                'brand': 'Fiat', 'model': 'Toro', 'year': 2021, 'license_plate': 'DB-0001',
            }, format='json')
        assert response.status_code == 503
        assert response.data['error'] == 'Could not save or load data'

    def test_today_checklist(self, collaborator_client, vehicle):
        assert collaborator_client.get(f'{VEHICLES}{vehicle.pk}/today/').data == {'checklist': None}


@pytest.mark.django_db
class TestChecklists:

    def departure_payload(self, vehicle, **overrides):
        payload = {
            'vehicle': vehicle.pk,
            'departure_mileage': vehicle.mileage + 10,
            'checklist_values': values_with(),
            'notes': 'Delivery run',
        }
        payload.update(overrides)
        return payload

    def test_departure_and_arrival(self, collaborator_client, vehicle):
        response = collaborator_client.post(CHECKLISTS, self.departure_payload(vehicle), format='json')
        assert response.status_code == 201
        assert response.data['status'] == DailyChecklist.STATUS_PENDING_ARRIVAL
        assert response.data['driver_name'] == 'Carlos Driver'
        assert response.data['vehicle_label'] == 'Toyota Corolla'
        checklist_id = response.data['id']

        response = collaborator_client.post(f'{CHECKLISTS}{checklist_id}/arrival/', {
            'arrival_mileage': 15130,
            'refuelings': [{'price_per_liter': 6.0, 'liters': 10, 'type': 'gasolina'}],
        }, format='json')

        assert response.status_code == 200
        assert response.data['status'] == DailyChecklist.STATUS_COMPLETED
        assert response.data['distance'] == 120
        assert response.data['total_liters'] == 10.0
        assert response.data['total_cost'] == '60.00'
        assert response.data['efficiency'] == 12.0
        assert response.data['efficiency_rating'] == 'excellent'
        vehicle.refresh_from_db()
        assert vehicle.mileage == 15130

    def test_departure_below_odometer(self, collaborator_client, vehicle):
        response = collaborator_client.post(
            CHECKLISTS, self.departure_payload(vehicle, departure_mileage=100), format='json',
        )
        assert response.status_code == 400
        assert 'departure_mileage' in response.data['detail']
        assert DailyChecklist.objects.count() == 0

    def test_departure_with_invalid_item_value(self, collaborator_client, vehicle):
        response = collaborator_client.post(
            CHECKLISTS, self.departure_payload(vehicle, checklist_values=values_with(fuel_level='overflowing')),
            format='json',
        )
        assert response.status_code == 400
        assert 'fuel_level' in response.data['detail']

    def test_second_open_trip_rejected(self, collaborator_client, vehicle):
        assert collaborator_client.post(CHECKLISTS, self.departure_payload(vehicle), format='json').status_code == 201
        response = collaborator_client.post(
            CHECKLISTS, self.departure_payload(vehicle, departure_mileage=20000), format='json',
        )
        assert response.status_code == 400
        assert 'vehicle' in response.data['detail']

    def test_arrival_below_departure(self, collaborator_client, vehicle):
        checklist = DailyChecklistFactory(vehicle=vehicle, departure_mileage=15000)
        response = collaborator_client.post(
            f'{CHECKLISTS}{checklist.pk}/arrival/', {'arrival_mileage': 14000}, format='json',
        )
        assert response.status_code == 400
        checklist.refresh_from_db()
        assert checklist.arrival_timestamp is None

    def test_list_keeps_orphaned_trips(self, collaborator_client, vehicle):
        DailyChecklistFactory(vehicle=vehicle, finished=True)
        Vehicle.objects.filter(pk=vehicle.pk).delete()

        response = collaborator_client.get(CHECKLISTS)

        assert response.status_code == 200
        assert response.data['count'] == 1
        assert response.data['results'][0]['vehicle_label'] == 'Vehicle not found'

    def test_filter_by_status(self, collaborator_client, vehicle):
        DailyChecklistFactory(vehicle=vehicle, finished=True, departure_timestamp=local_datetime(2024, 3, 1))
        DailyChecklistFactory(vehicle=vehicle)

        response = collaborator_client.get(CHECKLISTS, {'status': DailyChecklist.STATUS_COMPLETED})
        assert response.data['count'] == 1

    def test_only_admin_deletes(self, collaborator_client, admin_client, vehicle):
        checklist = DailyChecklistFactory(vehicle=vehicle)
        assert collaborator_client.delete(f'{CHECKLISTS}{checklist.pk}/').status_code == 403
        assert admin_client.delete(f'{CHECKLISTS}{checklist.pk}/').status_code == 204
        assert not DailyChecklist.objects.exists()

    def test_checklists_cannot_be_edited_in_place(self, admin_client, vehicle):
        checklist = DailyChecklistFactory(vehicle=vehicle)
        response = admin_client.patch(f'{CHECKLISTS}{checklist.pk}/', {'notes': 'x'}, format='json')
        assert response.status_code == 405

    def test_print_view(self, collaborator_client, vehicle):
        checklist = DailyChecklistFactory(vehicle=vehicle, checklist_values=values_with(documentation='missing'))
        response = collaborator_client.get(f'{CHECKLISTS}{checklist.pk}/print/')

        assert response.status_code == 200
        assert response['Content-Type'].startswith('text/html')
        assert b'Missing' in response.content


@pytest.mark.django_db
class TestUsers:

    def test_create_user_returns_temporary_password(self, admin_client):
        response = admin_client.post(USERS, {'username': 'newdriver', 'name': 'New Driver'}, format='json')
        assert response.status_code == 201
        assert response.data['role'] == 'collaborator'
        assert len(response.data['temporary_password']) == 12

    def test_delete_user_requires_reason(self, admin_client, collaborator):
        response = admin_client.delete(f'{USERS}{collaborator.pk}/', {}, format='json')
        assert response.status_code == 400
        assert 'reason' in response.data['detail']

    def test_delete_user_writes_report(self, admin_client, collaborator):
        response = admin_client.delete(f'{USERS}{collaborator.pk}/', {'reason': 'Left company'}, format='json')

        assert response.status_code == 200
        assert response.data['deleted_user_name'] == 'Carlos Driver'
        assert response.data['admin_name'] == 'Alice Admin'
        assert DeletionReport.objects.count() == 1

        reports = admin_client.get(DELETION_REPORTS)
        assert [r['reason'] for r in reports.data] == ['Left company']

    def test_admin_cannot_delete_self(self, admin_client, admin_user):
        response = admin_client.delete(f'{USERS}{admin_user.pk}/', {'reason': 'bye'}, format='json')
        assert response.status_code == 403

    def test_last_admin_cannot_be_demoted(self, admin_client, admin_user):
        response = admin_client.post(
            f'{USERS}{admin_user.pk}/role/', {'role': 'collaborator', 'reason': 'test'}, format='json',
        )
        assert response.status_code == 403
        admin_user.refresh_from_db()
        assert admin_user.is_admin

    def test_reset_password(self, admin_client, collaborator):
        response = admin_client.post(f'{USERS}{collaborator.pk}/reset-password/', {}, format='json')
        assert response.status_code == 200
        collaborator.refresh_from_db()
        assert collaborator.check_password(response.data['temporary_password'])

    def test_me(self, collaborator_client):
        response = collaborator_client.get(f'{USERS}me/')
        assert response.data['display_name'] == 'Carlos Driver'

    def test_password_reset_request_is_anonymous_and_uniform(self, api_client, collaborator):
        known = api_client.post(f'{USERS}password-reset/', {'email': collaborator.email}, format='json')
        unknown = api_client.post(f'{USERS}password-reset/', {'email': 'ghost@example.com'}, format='json')
        assert known.status_code == unknown.status_code == 200
        assert known.data == unknown.data

    def test_password_reset_confirm_is_anonymous_and_single_use(self, api_client, collaborator):
        payload = {
            'uid': urlsafe_base64_encode(force_bytes(collaborator.pk)),
            'token': default_token_generator.make_token(collaborator),
            'new_password': 'Brand-New!Secret42',
        }

        response = api_client.post(f'{USERS}password-reset-confirm/', payload, format='json')
        assert response.status_code == 200
        collaborator.refresh_from_db()
        assert collaborator.check_password('Brand-New!Secret42')

        reused = api_client.post(f'{USERS}password-reset-confirm/', payload, format='json')
        assert reused.status_code == 400
        assert reused.data['status_code'] == 400

    def test_password_reset_confirm_rejects_bad_token(self, api_client, collaborator):
        response = api_client.post(f'{USERS}password-reset-confirm/', {
            'uid': urlsafe_base64_encode(force_bytes(collaborator.pk)),
            'token': 'bogus',
            'new_password': 'Brand-New!Secret42',
        }, format='json')
        assert response.status_code == 400

    def test_clear_deletion_reports(self, admin_client, admin_user):
        DeletionReport.objects.create(
            deleted_user_id=7, deleted_user_name='Gone', admin_id=admin_user.pk,
            admin_name='Alice Admin', reason='test',
        )
        response = admin_client.post(f'{DELETION_REPORTS}clear/')
        assert response.data == {'deleted': 1}


@pytest.mark.django_db
class TestReports:

    def test_dashboard(self, collaborator_client, vehicle):
        DailyChecklistFactory(vehicle=vehicle)
        response = collaborator_client.get(f'{REPORTS}dashboard/')

        assert response.status_code == 200
        assert response.data['vehicle_count'] == 1
        assert response.data['in_transit_today'] == 1
        assert response.data['streak'] == 1

    def test_consumption(self, collaborator_client, vehicle):
        DailyChecklistFactory(vehicle=vehicle, finished=True)
        response = collaborator_client.get(f'{REPORTS}consumption/', {'vehicle': vehicle.pk})

        assert response.status_code == 200
        assert response.data[0]['efficiency_display'] == 'N/A'
        assert response.data[0]['distance'] == 100

    def test_monthly_requires_vehicle(self, collaborator_client):
        response = collaborator_client.get(f'{REPORTS}monthly/')
        assert response.status_code == 400
        assert 'vehicle' in response.data['detail']

    def test_monthly_rejects_bad_month(self, collaborator_client, vehicle):
        response = collaborator_client.get(f'{REPORTS}monthly/', {'vehicle': vehicle.pk, 'month': 13})
        assert response.status_code == 400

    @pytest.mark.parametrize('year', [0, 10000])
    def test_monthly_rejects_out_of_range_year(self, collaborator_client, vehicle, year):
        response = collaborator_client.get(f'{REPORTS}monthly/', {'vehicle': vehicle.pk, 'year': year, 'month': 1})
        assert response.status_code == 400
        assert response.data['status_code'] == 400

    def test_monthly_json_and_print(self, collaborator_client, vehicle):
        DailyChecklistFactory(
            vehicle=vehicle, departure_timestamp=local_datetime(2024, 3, 5, 9), finished=True,
            status=DailyChecklist.STATUS_PROBLEM, checklist_values=values_with(tire_pressure='low'),
        )
        params = {'vehicle': vehicle.pk, 'year': 2024, 'month': 3}

        data = collaborator_client.get(f'{REPORTS}monthly/', params).data
        assert data['total'] == 1
        assert data['with_problems'] == 1
        assert data['checklists'][0]['defects'][0]['title'] == 'Tire Pressure'

        response = collaborator_client.get(f'{REPORTS}monthly/print/', params)
        assert response.status_code == 200
        assert b'Monthly Inspection Report' in response.content

    def test_monthly_unknown_vehicle(self, collaborator_client):
        response = collaborator_client.get(f'{REPORTS}monthly/', {'vehicle': 424242})
        assert response.status_code == 404
