"""Core layer: configuration, logging, evidence access, file index and case registry."""

from .config import AppConfig, load_app_config  # noqa: F401
from .database import init_db, migrate  # noqa: F401
