"""
Search the catalog from the command line.

Usage:
    python -m scripts.search "{show:supernatural} {s:1} {sort:episode}"
    python -m scripts.search --commands

When a sub-search has several close matches the candidates are listed and
you are asked to pick one (an empty answer means none of them).
"""

import argparse  # command line options
import sys
from typing import List, Optional

from loguru import logger  # console logging

from catalog_search.commands import commands
from catalog_search.config import Settings, configure_logging, open_store
from catalog_search.errors import DisambiguationError, SearchError
from catalog_search.models import Result
from catalog_search.searcher import Searcher


def format_result(i: int, r: Result) -> str:
	line = f"{i:>3}. [{r.entity.value}] {r.name} ({r.year or '????'}) {r.attrs}".rstrip()
	if r.similarity >= 0:
		line += f"  sim={r.similarity:.2f}"
	if r.rating.votes:
		line += f"  rank={r.rating.rank} votes={r.rating.votes}"
	if r.credit.actor_id:
		line += f"  #{r.credit.position} {r.credit.character}".rstrip()
	return line


def ask(results: List[Result], what: str) -> Optional[Result]:
	"""Interactive chooser: list candidates and read a number from stdin."""
	print(f"Several results look like the {what} you meant:")
	for i, r in enumerate(results, 1):
		print(format_result(i, r))
	answer = input(f"Which {what}? [1-{len(results)}, empty for none] ").strip()
	if not answer:
		return None
	if not answer.isdigit() or not 1 <= int(answer) <= len(results):
		raise DisambiguationError(f"'{answer}' is not a number between 1 and {len(results)}")
	return results[int(answer) - 1]


def main(argv: Optional[List[str]] = None) -> int:
	parser = argparse.ArgumentParser(description="Search movies, TV shows, episodes and actors.")
	parser.add_argument("query", nargs="*", help="Query text with optional {directives}")
	parser.add_argument("--commands", action="store_true", help="List the available directives and exit")
	parser.add_argument("--no-choose", action="store_true", help="Never prompt; use the top hit of every sub-search")
	args = parser.parse_args(argv)

	if args.commands:
		for c in commands():
			names = ", ".join((c.name,) + c.synonyms)
			print(f"{{{names}}}\n    {c.description}\n")
		return 0
	if not args.query:
		parser.error("a query is required")

	settings = Settings.from_env()
	configure_logging(settings.log_level)
	store = open_store(settings)
	searcher = Searcher(store, good_threshold=settings.good_threshold, chooser=None if args.no_choose else ask)
	try:
		results = searcher.search(" ".join(args.query))
	except SearchError as e:
		logger.error(f"Search failed: {e}")
		return 1
	finally:
		store.close()

	for i, r in enumerate(results, 1):
		print(format_result(i, r))
	return 0


if __name__ == '__main__':
	sys.exit(main())
