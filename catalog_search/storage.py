"""
Storage backends the searcher runs compiled queries against.
A store executes SQL with '?' positional parameters and says whether it can
compute name similarity for fuzzy matching.
"""

from functools import cached_property  # lazy connection
import sqlite3  # default embedded backend
from typing import List, Optional, Sequence  # type annotations

# Import loguru for console logging and rapidfuzz for name similarity
from loguru import logger  # simple structured logger
from rapidfuzz import fuzz  # fuzzy string scoring

from .errors import StorageError  # driver errors are re-raised as this
from .schema import INDEXES_SQL, SCHEMA_SQL  # catalog DDL
from .sql_builder import DEFAULT_FUZZY_THRESHOLD  # shared default


class Store:
	"""Interface every storage backend implements."""

	fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD

	def execute(self, sql: str, params: Sequence = ()) -> List[tuple]:
		raise NotImplementedError

	def fuzzy_available(self) -> bool:
		raise NotImplementedError

	def close(self) -> None:
		pass


def similarity(a: Optional[str], b: Optional[str]) -> Optional[float]:
	"""Case-insensitive similarity of two names in 0..1, NULL if either is NULL."""
	if a is None or b is None:
		return None  # SQL NULL semantics
	return fuzz.ratio(a.lower(), b.lower()) / 100.0


class SQLiteStore(Store):
	def __init__(self, db_path: str, fuzzy: bool = True, fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD):
		self.db_path = db_path  # file path or ":memory:"
		self.fuzzy = fuzzy  # register similarity()
		self.fuzzy_threshold = fuzzy_threshold  # passed to the compiler

	@cached_property
	def connection(self) -> sqlite3.Connection:
		# the web server runs blocking endpoints in its threadpool
		conn = sqlite3.connect(self.db_path, check_same_thread=False)
		if self.fuzzy:
			conn.create_function("similarity", 2, similarity, deterministic=True)
		logger.info(f"[Store] Opened SQLite database '{self.db_path}' (fuzzy={self.fuzzy})")
		return conn

	def fuzzy_available(self) -> bool:
		return self.fuzzy

	def execute(self, sql: str, params: Sequence = ()) -> List[tuple]:
		try:
			return self.connection.execute(sql, tuple(params)).fetchall()
		except sqlite3.Error as e:
			raise StorageError(f"SQLite query failed: {e}") from e

	def create_schema(self) -> None:
		"""Create every table and index the search queries rely on."""
		logger.info("[Store] Creating schema")
		try:
			self.connection.executescript(SCHEMA_SQL)
			self.connection.executescript(INDEXES_SQL)
			self.connection.commit()
		except sqlite3.Error as e:
			raise StorageError(f"Could not create schema: {e}") from e

	def close(self) -> None:
		if "connection" in self.__dict__:
			self.connection.close()
			del self.__dict__["connection"]  # reopen on next use
