# school_app/api/v1/endpoints/sequences.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel

from school_app.core.security import require_admin
from school_app.core.sequences import read_sequence_value

router = APIRouter(
    tags=["Sequences"],
    dependencies=[Depends(require_admin)]
)


class SequenceValue(BaseModel):
    key: str
    seq: Optional[int] = None


# --- GET /{key} --- (read only; counters are never edited over HTTP)
@router.get("/{key}", response_model=SequenceValue)
async def read_sequence(key: str = Path(..., min_length=1, description="Counter key, e.g. studentId:2025-2026")):
    value = await read_sequence_value(key)
    if value is None:
        raise HTTPException(status_code=404, detail=f"Sequence '{key}' has not been used yet.")
    return SequenceValue(key=key, seq=value)
