# school_app/db/database.py
import logging

import motor.motor_asyncio
from beanie import init_beanie

from school_app.core.config import MONGODB_URL, DATABASE_NAME
from school_app.models.admission import Admission
from school_app.models.counter import Counter
from school_app.models.faculty import Faculty
from school_app.models.fee import FeeDue, FeePayment, FeeStructure
from school_app.models.student import Student
from school_app.models.user import User

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [
    User,
    Student,
    Admission,
    Faculty,
    FeeStructure,
    FeeDue,
    FeePayment,
    Counter,
]

_client = None


def get_client() -> motor.motor_asyncio.AsyncIOMotorClient:
    global _client
    if _client is None:
        _client = motor.motor_asyncio.AsyncIOMotorClient(MONGODB_URL, serverSelectionTimeoutMS=5000)
    return _client


async def init_db(database=None):
    """Connect to MongoDB and register the Beanie document models."""
    if database is None:
        logger.info("Connecting to MongoDB...")
        database = get_client()[DATABASE_NAME]
    logger.info(f"Using database: {database.name}")
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    logger.info("Beanie initialization complete for all models.")


async def ping_database() -> bool:
    await get_client().admin.command("ping")
    return True


def close_db():
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed.")
