import pytest
from rest_framework.test import APIClient

from tests.factories import AdminFactory, OK_VALUES, UserFactory, VehicleFactory


@pytest.fixture
def admin_user(db):
    return AdminFactory(name="Alice Admin")


@pytest.fixture
def collaborator(db):
    return UserFactory(name="Carlos Driver")


@pytest.fixture
def vehicle(db):
    return VehicleFactory(brand="Toyota", model="Corolla", year=2023, license_plate="XYZ-1234", mileage=15000)


@pytest.fixture
def ok_values():
    return dict(OK_VALUES)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def collaborator_client(collaborator):
    client = APIClient()
    client.force_authenticate(user=collaborator)
    return client
