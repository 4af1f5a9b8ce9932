# ParkGate database models
# Import all models here for SQLAlchemy discovery

from parkgate.models.global_ledger import GlobalLedger       # noqa
from parkgate.models.parking_class import ParkingClass       # noqa
from parkgate.models.vehicle_pricing import VehiclePricing   # noqa
from parkgate.models.vehicle import Vehicle                  # noqa
from parkgate.models.parking_history import ParkingHistory   # noqa
from parkgate.models.booth import Booth, BoothDevice         # noqa
