"""
Create an empty SQLite catalog with every table the searcher queries.

Usage:
    python -m scripts.init_db [path]

The path defaults to CATALOG_SEARCH_DB (or catalog.db). Loading data into the
tables is left to the import pipeline.
"""

import sys  # optional path argument

from loguru import logger  # console logging

from catalog_search.config import Settings, configure_logging  # env settings
from catalog_search.schema import TABLES
from catalog_search.storage import SQLiteStore  # schema creation


def main():
	settings = Settings.from_env()
	configure_logging(settings.log_level)
	path = sys.argv[1] if len(sys.argv) > 1 else settings.database

	logger.info(f"[1/2] Creating schema in '{path}'...")
	store = SQLiteStore(path, fuzzy=False)
	store.create_schema()

	logger.info("[2/2] Checking tables...")
	for table in TABLES:
		count = store.execute(f"SELECT COUNT(*) FROM {table}")[0][0]
		logger.info(f"  {table}: {count} rows")
	store.close()
	logger.info("[OK] Done.")


if __name__ == '__main__':
	main()  # invoke builder
