from __future__ import annotations

from fastapi import APIRouter, HTTPException

from grantmaster.mechanisms import MECHANISMS, NIH_FORMATTING, get_mechanism, serialize_mechanism


router = APIRouter()


@router.get("/mechanisms")
def list_mechanisms() -> dict[str, object]:
    return {
        "mechanisms": [serialize_mechanism(mechanism) for mechanism in MECHANISMS.values()],
        "formatting": dict(NIH_FORMATTING),
    }


@router.get("/mechanisms/{code}")
def get_mechanism_endpoint(code: str) -> dict[str, object]:
    mechanism = get_mechanism(code)
    if mechanism is None:
        raise HTTPException(status_code=404, detail="Mechanism not found")
    return serialize_mechanism(mechanism)
