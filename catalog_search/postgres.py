"""
PostgreSQL store. Fuzzy matching uses the pg_trgm extension's similarity()
when the extension is installed in the database.
"""

from functools import cached_property
import re
from typing import List, Sequence

import psycopg2
from loguru import logger

from .errors import StorageError
from .sql_builder import DEFAULT_FUZZY_THRESHOLD
from .storage import Store

# string literals, or a bare placeholder outside of them
_LITERAL_OR_PLACEHOLDER = re.compile(r"'[^']*'|\?")


def to_pyformat(sql: str) -> str:
	"""Rewrite '?' placeholders as psycopg2's '%s', leaving string literals alone."""
	def sub(match):
		text = match.group(0)
		if text == "?":
			return "%s"
		return text.replace("%", "%%")
	return _LITERAL_OR_PLACEHOLDER.sub(sub, sql)


class PostgresStore(Store):
	def __init__(self, dsn: str, fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD):
		self.dsn = dsn
		self.fuzzy_threshold = fuzzy_threshold

	@cached_property
	def connection(self):
		logger.info("[Store] Connecting to PostgreSQL")
		return psycopg2.connect(self.dsn)

	@cached_property
	def _has_trgm(self) -> bool:
		rows = self.execute("SELECT 1 FROM pg_extension WHERE extname = ?", ("pg_trgm",))
		logger.info(f"[Store] pg_trgm available: {bool(rows)}")
		return bool(rows)

	def fuzzy_available(self) -> bool:
		return self._has_trgm

	def execute(self, sql: str, params: Sequence = ()) -> List[tuple]:
		sql = to_pyformat(sql)
		try:
			with self.connection.cursor() as cur:
				cur.execute(sql, tuple(params))
				rows = cur.fetchall()
			self.connection.commit()
			return rows
		except psycopg2.Error as e:
			self.connection.rollback()
			raise StorageError(f"PostgreSQL query failed: {e}") from e

	def close(self) -> None:
		if "connection" in self.__dict__:
			self.connection.close()
			del self.__dict__["connection"]
