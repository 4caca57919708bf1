"""
Searcher module.
Parses a query, resolves its sub-searches to single atom ids, compiles the
outer query and maps the returned rows into results.
"""

from typing import List, Optional  # type annotations for clarity

from loguru import logger  # simple structured logger

from .commands import parse_query  # directive parsing
from .errors import StorageError  # tagged with the failing sub-search
from .models import ROLES, Chooser, Result, SearchSpec, result_from_row
from .sql_builder import compile_search  # SQL generation
from .storage import Store  # query execution


def pick(spec: SearchSpec, results: List[Result]) -> Optional[Result]:
	"""
	Choose one result of a sub-search.
	- no results: None
	- one result: that result
	- the top hit beats the runner-up by at least spec.good_threshold in
	  similarity (both scores computed): the top hit
	- otherwise the chooser decides, or the top hit when there is no chooser
	A chooser returning None means "no results"; anything it raises propagates.
	"""
	if not results:
		return None
	if len(results) == 1:
		return results[0]
	first, second = results[0].similarity, results[1].similarity
	if first >= 0 and second >= 0 and first - second >= spec.good_threshold:
		logger.debug(f"[Searcher] Auto-picked '{results[0].name}' ({first:.2f} vs {second:.2f})")
		return results[0]
	if spec.chooser is None:
		return results[0]
	logger.debug(f"[Searcher] Asking chooser to pick a {spec.what} from {len(results)} results")
	return spec.chooser(results, spec.what)


class Searcher:
	"""
	High-level search API over a storage backend.
	`good_threshold` and `chooser` apply to every sub-search of a query.
	"""

	def __init__(self, store: Store, good_threshold: float = 0.25, chooser: Optional[Chooser] = None):
		self.store = store
		self.good_threshold = good_threshold
		self.chooser = chooser

	def parse(self, query: str) -> SearchSpec:
		"""Build the search specification for a query string."""
		spec = parse_query(query, fuzzy=self.store.fuzzy_available())
		spec.good_threshold = self.good_threshold
		spec.chooser = self.chooser
		logger.debug(
			f"[Searcher] Parsed '{query}' | name='{spec.name}' fuzzy={spec.fuzzy} "
			f"entities={[e.value for e in spec.entities]} ranges={spec.ranges} "
			f"subs={list(spec.subs)} order={spec.order} limit={spec.limit}"
		)
		return spec

	def search(self, query: str) -> List[Result]:
		"""Parse and run a query string."""
		return self.results(self.parse(query))

	def results(self, spec: SearchSpec) -> List[Result]:
		"""
		Run a parsed search. Sub-searches are resolved first, in role order;
		if one of them comes back empty the whole search is empty and the outer
		query is never run.
		"""
		if not self._resolve(spec):
			return []

		compiled = compile_search(spec, self.store.fuzzy_threshold)
		if spec.debug:
			logger.info(f"[Searcher] SQL:{compiled.sql}params={list(compiled.params)}")
		else:
			logger.debug(f"[Searcher] SQL:{compiled.sql}params={list(compiled.params)}")

		rows = self.store.execute(compiled.sql, compiled.params)
		results = [result_from_row(row) for row in rows]
		logger.info(f"[Searcher] '{spec.name}' ({spec.what}) returned {len(results)} results")
		return results

	def _resolve(self, spec: SearchSpec) -> bool:
		for role in ROLES:
			sub = spec.sub(role)
			if sub is None:
				continue
			# these knobs belong to the top-level search
			sub.spec.good_threshold = spec.good_threshold
			sub.spec.chooser = spec.chooser
			sub.spec.debug = spec.debug

			try:
				found = self.results(sub.spec)
			except StorageError as e:
				raise StorageError(f"Error with {sub.spec.what} sub-search: {e}") from e
			picked = pick(sub.spec, found)
			if picked is None:
				logger.info(f"[Searcher] No {sub.spec.what} found for '{sub.spec.name}'; search is empty")
				return False
			sub.atom_id = picked.id
			logger.debug(f"[Searcher] Resolved {role} sub-search to '{picked.name}' (id={picked.id})")
		return True
