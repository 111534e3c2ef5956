from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.fleet.models import Vehicle

DEMO_VEHICLES = [
    {"brand": "Toyota", "model": "Corolla", "year": 2023, "license_plate": "XYZ-1234", "color": "Prata", "mileage": 15000},
    {"brand": "Honda", "model": "Civic", "year": 2022, "license_plate": "ABC-5678", "color": "Preto", "mileage": 32000},
    {"brand": "Chevrolet", "model": "Onix", "year": 2021, "license_plate": "DEF-9012", "color": "Branco", "mileage": 48000},
    {"brand": "Fiat", "model": "Toro", "year": 2020, "license_plate": "GHI-3456", "color": "Cinza", "mileage": 61000},
]


class Command(BaseCommand):
    help = "Create a demo admin, a demo collaborator and a few vehicles (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--admin-username", default="admin")
        parser.add_argument("--admin-password", default="admin12345")
        parser.add_argument("--collaborator-username", default="driver")
        parser.add_argument("--collaborator-password", default="driver12345")

    @transaction.atomic
    def handle(self, *args, **options):
        User = get_user_model()

        admin, created = User.objects.get_or_create(
            username=options["admin_username"],
            defaults={"name": "Fleet Admin", "role": User.ROLE_ADMIN, "is_staff": True},
        )
        if created:
            admin.set_password(options["admin_password"])
            admin.save(update_fields=["password"])
            self.stdout.write(f"Admin created: {admin.username}")

        driver, created = User.objects.get_or_create(
            username=options["collaborator_username"],
            defaults={"name": "Demo Driver", "role": User.ROLE_COLLABORATOR},
        )
        if created:
            driver.set_password(options["collaborator_password"])
            driver.save(update_fields=["password"])
            self.stdout.write(f"Collaborator created: {driver.username}")

        vehicles_created = 0
        for data in DEMO_VEHICLES:
            _, created = Vehicle.objects.get_or_create(
                license_plate=data["license_plate"],
                defaults=data,
            )
            vehicles_created += int(created)

        self.stdout.write(self.style.SUCCESS(f"Vehicles created: {vehicles_created}"))
