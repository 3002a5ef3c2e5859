# school_app/core/utils.py
import logging
from typing import Any, Dict, Optional, Type, TypeVar

from beanie import Document
from bson import ObjectId
from fastapi import HTTPException, status
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)
DocumentT = TypeVar("DocumentT", bound=Document)


def validate_document_response(
    doc: Document,
    schema: Type[ResponseT],
    extra: Optional[Dict[str, Any]] = None,
) -> ResponseT:
    """
    Dump a Beanie document to JSON-safe data (ObjectIds -> str) and validate it
    against ``schema``. ``extra`` adds computed fields (totals, flags).
    """
    if not doc: raise ValueError("Invalid document provided")
    doc_id_log = str(getattr(doc, "id", "N/A"))
    try:
        data = doc.model_dump(mode="json", by_alias=True)
        if doc.id is None: raise ValueError("Missing document ID")
        data["_id"] = str(doc.id)
        data.pop("id", None)
        if extra: data.update(extra)
        return schema.model_validate(data)
    except (ValidationError, ValueError) as e:
        logger.error(f"Error preparing {schema.__qualname__} for document {doc_id_log}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error preparing response data.") from e


async def get_document_or_404(document_cls: Type[DocumentT], doc_id: str, label: str) -> DocumentT:
    """Fetch by string ObjectId; 400 on malformed id, 404 when missing."""
    if not ObjectId.is_valid(doc_id):
        logger.warning(f"Invalid ObjectId format for {label}: {doc_id}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label} ID format.")
    doc = await document_cls.get(ObjectId(doc_id))
    if not doc:
        logger.info(f"{label.capitalize()} lookup failed for ID '{doc_id}'.")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label.capitalize()} with ID '{doc_id}' not found.")
    return doc
