from . import fuel_ledger
from . import diagnosis_service
from . import vehicle_service
from .fuel_ledger import FuelLedger
