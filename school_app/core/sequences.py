# school_app/core/sequences.py
"""
Counter store for human readable identifiers.

Every write to the ``counters`` collection goes through this module. Values are
handed out with a single ``findAndModify`` so concurrent requests (and several
API processes) never observe the same number for a key.
"""
import logging
import re
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Type

from beanie import Document
from pymongo import ReturnDocument, DESCENDING
from pymongo.errors import PyMongoError

from school_app.models.counter import Counter

logger = logging.getLogger(__name__)

# Async callable returning the highest identifier already stored for a prefix
IdentifierLookup = Callable[[], Awaitable[Optional[str]]]


class SequenceAllocationError(Exception):
    """The counter store could not be reached or did not answer as expected."""


async def next_sequence_value(key: str) -> int:
    """
    Atomically increment the counter for ``key`` and return the new value.
    A missing counter behaves as seq=0, so the first call returns 1.
    """
    if not key:
        raise ValueError("Sequence key must be a non-empty string.")

    logger.debug(f"Allocating next value for sequence '{key}'")
    collection = Counter.get_motor_collection()
    now = datetime.now()
    try:
        updated_doc = await collection.find_one_and_update(
            {"key": key},
            {
                "$inc": {"seq": 1},
                "$set": {"updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        logger.error(f"Database error incrementing sequence '{key}': {e}", exc_info=True)
        raise SequenceAllocationError(f"Database error accessing sequence counter '{key}'") from e

    if not updated_doc or "seq" not in updated_doc:
        logger.error(f"CRITICAL: find_one_and_update returned no document for sequence '{key}'.")
        raise SequenceAllocationError(f"Failed to get or create sequence counter: {key}")

    value = updated_doc["seq"]
    logger.debug(f"Sequence '{key}' -> {value}")
    return value


def parse_sequence_suffix(identifier: Optional[str], prefix: str) -> int:
    """Numeric tail of ``identifier`` after ``prefix``; 0 when absent or unparsable."""
    if not identifier or not identifier.startswith(prefix):
        return 0
    try:
        return int(identifier[len(prefix):])
    except ValueError:
        return 0


async def ensure_seeded(key: str, prefix: str, lookup: IdentifierLookup) -> None:
    """
    Create the counter for ``key`` starting at the highest legacy suffix found by ``lookup``.

    No-op once the counter exists. The insert uses ``$setOnInsert`` so a row seeded by
    a concurrent caller is never overwritten.
    """
    try:
        if await Counter.find_one(Counter.key == key):
            return

        latest = await lookup()
        max_seq = parse_sequence_suffix(latest, prefix)
        if latest:
            logger.info(f"Seeding sequence '{key}' from existing identifier '{latest}' (seq={max_seq})")
        else:
            logger.debug(f"No legacy identifiers for prefix '{prefix}', seeding '{key}' at 0")

        now = datetime.now()
        await Counter.get_motor_collection().find_one_and_update(
            {"key": key},
            {"$setOnInsert": {"seq": max_seq, "created_at": now, "updated_at": now}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        logger.error(f"Database error seeding sequence '{key}': {e}", exc_info=True)
        raise SequenceAllocationError(f"Database error seeding sequence counter '{key}'") from e


def identifier_lookup(
    document_cls: Type[Document],
    field: str,
    prefix: str,
    width: int,
    **filters: Any,
) -> IdentifierLookup:
    """
    Build a lookup over ``document_cls`` for the highest ``field`` value shaped like
    ``^<prefix>\\d{width}$``. Extra keyword filters narrow the scan (e.g. academic_year).
    """
    pattern = f"^{re.escape(prefix)}\\d{{{width}}}$"

    async def lookup() -> Optional[str]:
        query = {**filters, field: {"$regex": pattern}}
        docs = await document_cls.get_motor_collection().find(
            query, {field: 1}
        ).sort(field, DESCENDING).limit(1).to_list(length=1)
        if not docs:
            return None
        return docs[0].get(field)

    return lookup


async def read_sequence_value(key: str) -> Optional[int]:
    """Current value of a counter without touching it (None when the key was never used)."""
    counter = await Counter.find_one(Counter.key == key)
    return counter.seq if counter else None
