"""
Runtime configuration read from the environment, plus logging setup.

CATALOG_SEARCH_BACKEND          sqlite (default) or postgres
CATALOG_SEARCH_DB               SQLite file path or PostgreSQL DSN (default catalog.db)
CATALOG_SEARCH_FUZZY            1/0, register the similarity function for SQLite (default 1)
CATALOG_SEARCH_FUZZY_THRESHOLD  minimum name similarity for a fuzzy match (default 0.3)
CATALOG_SEARCH_GOOD_THRESHOLD   similarity gap that auto-picks a sub-search hit (default 0.25)
CATALOG_SEARCH_LOG_LEVEL        loguru level (default INFO)
"""

from dataclasses import dataclass
import os
import sys
from typing import Mapping, Optional

from loguru import logger

from .sql_builder import DEFAULT_FUZZY_THRESHOLD
from .storage import SQLiteStore, Store

BACKENDS = ("sqlite", "postgres")


class ConfigError(ValueError):
	"""Raised when an environment setting is missing or malformed."""


def _float(env: Mapping[str, str], key: str, default: float) -> float:
	raw = env.get(key)
	if raw is None or raw == "":
		return default
	try:
		return float(raw)
	except ValueError as e:
		raise ConfigError(f"{key} must be a number, got '{raw}'") from e


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
	raw = env.get(key)
	if raw is None or raw == "":
		return default
	return raw.strip().lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
	backend: str = "sqlite"
	database: str = "catalog.db"
	fuzzy: bool = True
	fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
	good_threshold: float = 0.25
	log_level: str = "INFO"

	@classmethod
	def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
		env = os.environ if env is None else env
		backend = env.get("CATALOG_SEARCH_BACKEND", "sqlite").strip().lower()
		if backend not in BACKENDS:
			raise ConfigError(f"CATALOG_SEARCH_BACKEND must be one of {BACKENDS}, got '{backend}'")
		return cls(
			backend=backend,
			database=env.get("CATALOG_SEARCH_DB", "catalog.db"),
			fuzzy=_bool(env, "CATALOG_SEARCH_FUZZY", True),
			fuzzy_threshold=_float(env, "CATALOG_SEARCH_FUZZY_THRESHOLD", DEFAULT_FUZZY_THRESHOLD),
			good_threshold=_float(env, "CATALOG_SEARCH_GOOD_THRESHOLD", 0.25),
			log_level=env.get("CATALOG_SEARCH_LOG_LEVEL", "INFO").upper(),
		)


def configure_logging(level: str = "INFO") -> None:
	"""Send loguru output to stderr at `level`."""
	logger.remove()
	logger.add(sys.stderr, level=level)


def open_store(settings: Settings) -> Store:
	"""Create the storage backend named by `settings`."""
	if settings.backend == "postgres":
		from .postgres import PostgresStore  # psycopg2 is only needed for this backend
		return PostgresStore(settings.database, fuzzy_threshold=settings.fuzzy_threshold)
	return SQLiteStore(settings.database, fuzzy=settings.fuzzy, fuzzy_threshold=settings.fuzzy_threshold)
