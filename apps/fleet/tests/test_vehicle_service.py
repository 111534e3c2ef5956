from django.core.exceptions import PermissionDenied, ValidationError

from apps.fleet.models import DailyChecklist, Vehicle
from apps.fleet.services import vehicle_service
from tests.factories import BaseTestCase, DailyChecklistFactory, VehicleFactory


class VehicleServiceTests(BaseTestCase):

    def test_insert_omits_blank_color_and_zero_mileage(self):
        vehicle = vehicle_service.save_vehicle(actor=self.admin, data={
            'brand': 'Fiat', 'model': 'Toro', 'year': 2021,
            'license_plate': 'abc-1d23', 'color': '  ', 'mileage': 0,
        })
        vehicle.refresh_from_db()
        self.assertEqual(vehicle.color, '')
        self.assertEqual(vehicle.mileage, 0)
        self.assertEqual(vehicle.license_plate, 'ABC-1D23')

    def test_insert_requires_identity_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            vehicle_service.save_vehicle(actor=self.admin, data={'brand': 'Fiat'})
        self.assertIn('license_plate', ctx.exception.message_dict)
        self.assertIn('year', ctx.exception.message_dict)

    def test_update_merges_supplied_fields(self):
        vehicle_service.save_vehicle(
            actor=self.admin, vehicle_id=self.vehicle.pk, data={'color': 'Azul'},
        )
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.color, 'Azul')
        self.assertEqual(self.vehicle.mileage, 10000)

    def test_lowering_mileage_is_logged_as_correction(self):
        with self.assertLogs('apps.fleet.services.vehicle_service', level='WARNING') as logs:
            vehicle_service.save_vehicle(
                actor=self.admin, vehicle_id=self.vehicle.pk, data={'mileage': 9000},
            )
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.mileage, 9000)
        self.assertIn('corrected downwards', logs.output[0])

    def test_update_rejects_non_numeric_mileage(self):
        with self.assertRaises(ValidationError) as ctx:
            vehicle_service.save_vehicle(
                actor=self.admin, vehicle_id=self.vehicle.pk, data={'mileage': 'lots'},
            )
        self.assertIn('mileage', ctx.exception.message_dict)
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.mileage, 10000)

    def test_update_accepts_numeric_string_mileage(self):
        vehicle_service.save_vehicle(
            actor=self.admin, vehicle_id=self.vehicle.pk, data={'mileage': '10500'},
        )
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.mileage, 10500)

    def test_duplicate_plate_rejected(self):
        other = VehicleFactory(license_plate='DUP-0001')
        with self.assertRaises(ValidationError):
            vehicle_service.save_vehicle(
                actor=self.admin, vehicle_id=self.vehicle.pk, data={'license_plate': other.license_plate},
            )

    def test_collaborator_cannot_manage_vehicles(self):
        with self.assertRaises(PermissionDenied):
            vehicle_service.save_vehicle(actor=self.collaborator, vehicle_id=self.vehicle.pk, data={'color': 'X'})
        with self.assertRaises(PermissionDenied):
            vehicle_service.delete_vehicle(actor=self.collaborator, vehicle_id=self.vehicle.pk)

    def test_delete_keeps_checklists(self):
        checklist = DailyChecklistFactory(vehicle=self.vehicle)
        vehicle_id = self.vehicle.pk

        vehicle_service.delete_vehicle(actor=self.admin, vehicle_id=vehicle_id)

        self.assertFalse(Vehicle.objects.filter(pk=vehicle_id).exists())
        orphan = DailyChecklist.objects.get(pk=checklist.pk)
        self.assertEqual(orphan.vehicle_id, vehicle_id)

    def test_get_unknown_vehicle(self):
        with self.assertRaises(Vehicle.DoesNotExist):
            vehicle_service.get_vehicle(999999)

    def test_record_odometer_on_missing_vehicle_is_skipped(self):
        self.assertIsNone(vehicle_service.record_odometer(999999, 100))

    def test_history_tracks_changes(self):
        vehicle_service.save_vehicle(actor=self.admin, vehicle_id=self.vehicle.pk, data={'mileage': 12000})
        self.assertEqual(self.vehicle.history.count(), 2)
