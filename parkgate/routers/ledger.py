# parkgate/routers/ledger.py
"""Capacity ledger snapshot and subscription class administration."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from parkgate.database import get_db
from parkgate.schemas.ledger import (
    LedgerOut, ParkingClassCreate, ParkingClassOut, ParkingClassUpdate, PricingOut,
)
from parkgate.services import capacity_ledger, class_admin

router = APIRouter()


@router.get("/ledger", response_model=LedgerOut, summary="Facility capacity, classes and pricing")
def get_ledger(db: Session = Depends(get_db)):
    ledger = capacity_ledger.get_ledger(db)
    return {
        "code": ledger.code,
        "name": ledger.name,
        "total_parking_slots": ledger.total_parking_slots,
        "occupied_slots": ledger.occupied_slots,
        "available_slots": ledger.available_slots,
        "total_registered_users": ledger.total_registered_users,
        "public_slots": {
            "total": ledger.public_total,
            "occupied": ledger.public_occupied,
            "available": ledger.public_available,
        },
        "supported_classes": [ParkingClassOut.model_validate(c) for c in ledger.classes],
        "pricing": [PricingOut.model_validate(p) for p in ledger.pricing],
        "is_consistent": capacity_ledger.is_consistent(db, ledger),
        "last_maintenance_date": ledger.last_maintenance_date,
    }


@router.post("/ledger/classes", response_model=ParkingClassOut, status_code=status.HTTP_201_CREATED,
             summary="Add a subscription class")
def create_class(body: ParkingClassCreate, db: Session = Depends(get_db)):
    return class_admin.add_class(db, body.model_dump())


@router.put("/ledger/classes/{code}", response_model=ParkingClassOut, summary="Edit a subscription class")
def edit_class(code: str, body: ParkingClassUpdate, db: Session = Depends(get_db)):
    """slots_reserved cannot go below the slots in use; slots_used itself is not editable."""
    return class_admin.update_class(db, code, body.model_dump(exclude_unset=True))


@router.delete("/ledger/classes/{code}", summary="Delete a subscription class")
def remove_class(code: str, db: Session = Depends(get_db)):
    deleted = class_admin.delete_class(db, code)
    return {"status": "deleted", "code": deleted}
