# school_app/core/config.py
import os
import sys
import logging
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from loguru import logger

# --- .env lookup (project root, one level above the package) ---
project_root = Path(__file__).resolve().parent.parent.parent
dotenv_path = project_root / ".env"

if dotenv_path.is_file():
    logger.info(f"Loading environment variables from: {dotenv_path}")
    load_dotenv(dotenv_path=dotenv_path)
else:
    logger.warning(f".env file not found at {dotenv_path}. Relying on system environment variables.")


# --- Intercept Handler (standard logging -> Loguru) ---
class InterceptHandler(logging.Handler):
    """Routes records from the standard logging module into Loguru."""
    def emit(self, record: logging.LogRecord) -> None:
        try: level = logger.level(record.levelname).name
        except ValueError: level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# --- Logging setup ---
def setup_logging():
    """Configure Loguru sinks and hijack the standard library loggers."""
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    log_file_path = Path(os.getenv("LOG_FILE_PATH", "logs/school_app_{time:YYYY-MM-DD}.log"))
    log_rotation = os.getenv("LOG_ROTATION", "1 day")
    log_retention = os.getenv("LOG_RETENTION", "7 days")
    log_serialize = _env_flag("LOG_SERIALIZE")

    logger.remove()

    # Console
    logger.add(sys.stderr, level=log_level_name, format=log_format, colorize=True)

    # File
    if _env_flag("LOG_TO_FILE", "true"):
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            logger.add(
                log_file_path,
                level=log_level_name,
                format=log_format,
                rotation=log_rotation,
                retention=log_retention,
                serialize=log_serialize,
                enqueue=True,
                backtrace=True,
                diagnose=False,
                encoding="utf-8",
            )
            logger.info(f"File logging enabled at: {log_file_path}")
        except OSError as e:
            logger.error(f"Failed to setup file logging at {log_file_path}: {e}")

    # Send uvicorn / fastapi / pymongo loggers through Loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(("uvicorn", "fastapi", "starlette", "apscheduler")):
            existing_logger = logging.getLogger(name)
            existing_logger.handlers = [InterceptHandler()]
            existing_logger.propagate = False

    logger.info(f"Loguru logging setup complete. Level: {log_level_name}")


# --- JWT ---
SECRET_KEY: str = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    logger.critical("FATAL: SECRET_KEY environment variable is not set.")
    raise ValueError("SECRET_KEY environment variable is not set.")

ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
except ValueError:
    logger.warning("Invalid ACCESS_TOKEN_EXPIRE_MINUTES. Using default: 30.")
    ACCESS_TOKEN_EXPIRE_MINUTES = 30

# --- Database ---
MONGODB_URL: str = os.getenv("MONGODB_URL")
if not MONGODB_URL:
    logger.critical("FATAL: MONGODB_URL environment variable is not set.")
    raise ValueError("MONGODB_URL environment variable is not set.")

# Database name from the URL path (mongodb://host/<db>?opts) unless overridden
_default_db_name = "school_app_db"
_url_path = MONGODB_URL.split("://", 1)[-1]
if "/" in _url_path:
    _path_part = _url_path.split("/", 1)[1].split("?")[0]
    if _path_part:
        _default_db_name = _path_part
DATABASE_NAME: str = os.getenv("DATABASE_NAME", _default_db_name)

# --- HTTP ---
RATE_LIMIT_ENABLED: bool = _env_flag("RATE_LIMIT_ENABLED", "true")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

# --- Scheduler ---
SCHEDULER_TIMEZONE: str = os.getenv("SCHEDULER_TIMEZONE", "Asia/Kolkata")
try:
    FEE_DUE_REFRESH_MINUTES: int = int(os.getenv("FEE_DUE_REFRESH_MINUTES", "60"))
except ValueError:
    logger.warning("Invalid FEE_DUE_REFRESH_MINUTES. Using default: 60.")
    FEE_DUE_REFRESH_MINUTES = 60

# --- Login accounts created with student / faculty records ---
DEFAULT_STUDENT_PASSWORD: str = os.getenv("DEFAULT_STUDENT_PASSWORD", "student123")
DEFAULT_FACULTY_PASSWORD: str = os.getenv("DEFAULT_FACULTY_PASSWORD", "faculty123")

# --- Academic calendar ---
try:
    ACADEMIC_YEAR_START_MONTH: int = int(os.getenv("ACADEMIC_YEAR_START_MONTH", "4"))
    if not 1 <= ACADEMIC_YEAR_START_MONTH <= 12:
        raise ValueError(ACADEMIC_YEAR_START_MONTH)
except ValueError:
    logger.warning("Invalid ACADEMIC_YEAR_START_MONTH. Using default: 4 (April).")
    ACADEMIC_YEAR_START_MONTH = 4


logger.info(f"JWT Algorithm: {ALGORITHM}")
logger.info(f"Access Token Expire Minutes: {ACCESS_TOKEN_EXPIRE_MINUTES}")
logger.info(f"Database Name: {DATABASE_NAME}")
