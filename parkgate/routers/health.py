# parkgate/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + ledger + barrier reachability.
"""

import requests
from requests.auth import HTTPDigestAuth
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from parkgate.database import get_db
from parkgate.config import settings
from parkgate.models.booth import BoothDevice
from parkgate.models.enums import DeviceRole
from parkgate.models.global_ledger import GlobalLedger
from parkgate.services.connection_registry import registry
from parkgate.utils.time_utils import utcnow

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity and ledger presence
    - Number of live device connections
    - Barrier reachability (digest-auth GET on each barrier relay)
    """
    result = {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "ledger": "unknown",
        "connected_devices": len(registry),
        "barriers": {},
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"
        return result

    ledger = db.query(GlobalLedger).filter(GlobalLedger.code == settings.LEDGER_CODE).first()
    if ledger is None:
        result["ledger"] = "missing"
        result["status"] = "degraded"
    else:
        result["ledger"] = "ok"

    # Ping each barrier relay
    barriers = db.query(BoothDevice).filter(
        BoothDevice.role == DeviceRole.BARRIER.value,
        BoothDevice.ip_address.isnot(None),
    ).all()
    for device in barriers:
        try:
            resp = requests.get(
                f"http://{device.ip_address}/cgi-bin/magicBox.cgi?action=getDeviceType",
                auth=HTTPDigestAuth(settings.BARRIER_USER, settings.BARRIER_PASSWORD),
                timeout=3,
            )
            result["barriers"][device.device_id] = "ok" if resp.status_code == 200 else f"http_{resp.status_code}"
        except requests.exceptions.ConnectionError:
            result["barriers"][device.device_id] = "unreachable"
            result["status"] = "degraded"
        except Exception as e:
            result["barriers"][device.device_id] = f"error: {str(e)}"

    return result
