# parkgate/routers/parking.py
"""Booth validation, registration and vehicle lookup endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from parkgate.database import get_db
from parkgate.models.parking_history import ParkingHistory
from parkgate.models.vehicle import Vehicle
from parkgate.schemas.parking import (
    EntryValidateOut, EntryValidateRequest, ExitValidateOut, ExitValidateRequest,
    RegisterRequest, RegistrationOut,
)
from parkgate.schemas.parking_history import ParkingHistoryOut
from parkgate.schemas.vehicle import BlacklistUpdate, VehicleOut, VehicleUpdate
from parkgate.services import vehicle_store
from parkgate.services.admission_service import validate_entry
from parkgate.services.class_ref import PUBLIC_CODE
from parkgate.services.notification_gateway import DeviceGateway, get_gateway
from parkgate.services.registration_service import register_vehicle, set_blacklist, update_vehicle
from parkgate.services.settlement_service import validate_exit
from parkgate.utils.time_utils import to_naive_utc

router = APIRouter(prefix="/parking")


@router.post("/in/validate", response_model=EntryValidateOut, summary="Validate a vehicle at an entry booth")
async def validate_vehicle_entry(body: EntryValidateRequest, db: Session = Depends(get_db),
                                 gateway: DeviceGateway = Depends(get_gateway)):
    """
    Called by the entry booth when the ANPR camera reads a plate.
    Reserves a slot (class or public pool) and opens the barrier on success.
    """
    result = await validate_entry(
        db, gateway,
        vehicle_no=body.vehicle_no,
        booth_code=body.booth_code,
        entry_time=to_naive_utc(body.entry_time),
        vehicle_type=body.vehicle_type,
    )
    return result.as_response()


@router.post("/out/validate", response_model=ExitValidateOut, summary="Validate a vehicle at an exit booth")
async def validate_vehicle_exit(body: ExitValidateRequest, db: Session = Depends(get_db),
                                gateway: DeviceGateway = Depends(get_gateway)):
    """
    Computes the tariff, and when nothing is left to pay releases the slot,
    records the session in parking history and opens the barrier.
    Responds 403 with the tariff when payment is still required.
    """
    result = await validate_exit(
        db, gateway,
        vehicle_no=body.vehicle_no,
        booth_code=body.booth_code,
        is_paid=body.is_paid,
    )
    return result.as_response()


@router.post("/register", response_model=RegistrationOut, status_code=status.HTTP_201_CREATED,
             summary="Register a vehicle into a class (or as public)")
async def register(body: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    result = await register_vehicle(db, body.model_dump())
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.as_response()


@router.get("/history", response_model=list[ParkingHistoryOut], summary="Completed parking sessions")
def get_parking_history(limit: int = 50, plate: str = None, db: Session = Depends(get_db)):
    """Newest first."""
    q = db.query(ParkingHistory)
    if plate:
        q = q.filter(ParkingHistory.plate_number == vehicle_store.normalize_plate(plate))
    return q.order_by(ParkingHistory.exit_time.desc(), ParkingHistory.id.desc()).limit(limit).all()


@router.get("/vehicles", response_model=list[VehicleOut], summary="List registered vehicles")
def list_registered_vehicles(class_code: str = None, search: str = None, limit: int = 50, offset: int = 0,
                             db: Session = Depends(get_db)):
    """Vehicles registered to a subscription class (public visitors are not listed)."""
    q = db.query(Vehicle).filter(Vehicle.class_code != PUBLIC_CODE)
    if class_code:
        q = q.filter(Vehicle.class_code == class_code)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(Vehicle.plate_number.ilike(pattern), Vehicle.owner_first_name.ilike(pattern),
                         Vehicle.owner_last_name.ilike(pattern)))
    return q.order_by(Vehicle.plate_number).offset(offset).limit(limit).all()


@router.get("/vehicles/{plate}", response_model=VehicleOut, summary="Look up a vehicle by plate")
def lookup_vehicle(plate: str, db: Session = Depends(get_db)):
    vehicle = vehicle_store.find_by_plate(db, plate)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle


@router.put("/vehicles/{plate}", response_model=RegistrationOut, summary="Edit a vehicle registration")
async def edit_vehicle(plate: str, body: VehicleUpdate, db: Session = Depends(get_db)):
    """Changing class_code moves a parked vehicle's slot to the new class."""
    result = await update_vehicle(db, plate, body.model_dump(exclude_unset=True))
    return result.as_response()


@router.put("/vehicles/{plate}/blacklist", response_model=VehicleOut, summary="Blacklist or clear a vehicle")
def update_blacklist(plate: str, body: BlacklistUpdate, db: Session = Depends(get_db)):
    vehicle = set_blacklist(db, plate, body.is_blacklisted)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle
