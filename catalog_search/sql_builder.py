"""
Query compiler.
Turns a resolved SearchSpec into one SELECT over the `name` table joined to
every entity table, with credit joins added only when a sub-search needs them.
All user-derived values are passed as '?' parameters; identifiers only come
from the fixed tables in this module.
"""

from dataclasses import dataclass  # compiled query container
from typing import List, Optional, Tuple  # type annotations

# Import loguru for console logging
from loguru import logger  # simple structured logger

from .models import IntRange, SearchSpec  # resolved spec tree

DEFAULT_FUZZY_THRESHOLD = 0.3  # same as pg_trgm's default for the % operator

ENTITY_COLUMN = """CASE
			WHEN m.atom_id IS NOT NULL THEN 'movie'
			WHEN t.atom_id IS NOT NULL THEN 'tvshow'
			WHEN e.atom_id IS NOT NULL THEN 'episode'
			WHEN a.atom_id IS NOT NULL THEN 'actor'
			ELSE ''
		END"""

ATOM_COLUMN = "COALESCE(m.atom_id, t.atom_id, e.atom_id, a.atom_id)"

YEAR_COLUMN = "COALESCE(m.year, t.year, e.year, 0)"

ATTRS_COLUMN = """CASE
			WHEN m.atom_id IS NOT NULL THEN
				trim(
					CASE WHEN m.tv THEN '(TV) ' ELSE '' END
					||
					CASE WHEN m.video THEN '(V)' ELSE '' END
				)
			WHEN t.atom_id IS NOT NULL THEN
				CASE
					WHEN t.year_start > 0 THEN cast(t.year_start AS text)
					ELSE '????'
				END
				|| '-' ||
				CASE
					WHEN t.year_end > 0 THEN cast(t.year_end AS text)
					ELSE '????'
				END
			WHEN e.atom_id IS NOT NULL THEN
				'(TV show: ' || COALESCE(et.name, '')
				||
				CASE
					WHEN e.season > 0 AND e.episode_num > 0 THEN
						', #' || cast(e.season AS text)
						||
						'.' || cast(e.episode_num AS text)
					ELSE ''
				END
				|| ')'
			ELSE ''
		END"""

# Credit columns keyed by (actor sub-search active, media sub-search active)
CREDIT_COLUMNS = {
	(False, False): """0 AS c_actor_id,
		0 AS c_media_id,
		'' AS c_character,
		0 AS c_position,
		'' AS c_attrs""",
	(False, True): """COALESCE(c_media.actor_atom_id, 0) AS c_actor_id,
		COALESCE(c_media.media_atom_id, 0) AS c_media_id,
		COALESCE(c_media.character, '') AS c_character,
		COALESCE(c_media.position, 0) AS c_position,
		COALESCE(c_media.attrs, '') AS c_attrs""",
	(True, False): """COALESCE(c_actor.actor_atom_id, 0) AS c_actor_id,
		COALESCE(c_actor.media_atom_id, 0) AS c_media_id,
		COALESCE(c_actor.character, '') AS c_character,
		COALESCE(c_actor.position, 0) AS c_position,
		COALESCE(c_actor.attrs, '') AS c_attrs""",
	(True, True): """COALESCE(c_actor.actor_atom_id, c_media.actor_atom_id, 0) AS c_actor_id,
		COALESCE(c_actor.media_atom_id, c_media.media_atom_id, 0) AS c_media_id,
		COALESCE(c_actor.character, c_media.character, '') AS c_character,
		COALESCE(c_actor.position, c_media.position, 0) AS c_position,
		COALESCE(c_actor.attrs, c_media.attrs, '') AS c_attrs""",
}

# Columns each range dimension tests; season/episode let non-episodes through
RANGE_COLUMNS = (
	("year", YEAR_COLUMN, False),
	("rating", "rating.rank", False),
	("votes", "rating.votes", False),
	("season", "e.season", True),
	("episode", "e.episode_num", True),
)

# Allow-list of user-facing sort names. None means "billing position of the joined credits".
QUALIFIED_COLUMNS = {
	"entity": "entity",
	"atom_id": "atom_id",
	"name": "name",
	"title": "name",
	"year": "year",
	"attrs": "attrs",
	"similarity": "similarity",

	"season": "e.season",
	"episode": "e.episode_num",
	"episode_num": "e.episode_num",

	"rank": "rating.rank",
	"rating": "rating.rank",
	"votes": "rating.votes",

	"billing": None,
	"billed": None,
}

DIRECTIONS = {"asc": "ASC", "desc": "DESC"}


@dataclass(frozen=True)
class CompiledQuery:
	sql: str
	params: Tuple


def _range_cond(col: str, r: IntRange, params: List) -> str:
	params.extend([r.min, r.max])  # inclusive bounds
	return f"{col} >= ? AND {col} <= ?"


class QueryCompiler:
	"""
	Compiles one SearchSpec. Sub-searches must already carry their resolved
	atom ids; unresolved ones contribute nothing to the query.
	"""

	def __init__(self, spec: SearchSpec, fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD):
		self.spec = spec  # resolved search
		self.fuzzy_threshold = fuzzy_threshold  # minimum similarity for a name match

	@property
	def use_similarity(self) -> bool:
		return self.spec.fuzzy and bool(self.spec.name)

	@property
	def actor_id(self) -> Optional[int]:
		return self.spec.sub_id("actor")

	@property
	def media_id(self) -> Optional[int]:
		for role in ("movie", "tvshow", "episode"):
			atom_id = self.spec.sub_id(role)
			if atom_id is not None:
				return atom_id
		return None

	@property
	def position_column(self) -> Optional[str]:
		"""The billing position billing filters and sorts apply to."""
		if self.actor_id is not None and self.media_id is not None:
			return "COALESCE(c_actor.position, c_media.position)"
		if self.actor_id is not None:
			return "c_actor.position"
		if self.media_id is not None:
			return "c_media.position"
		return None

	def compile(self) -> CompiledQuery:
		params: List = []  # filled in the order placeholders appear in the text
		similarity = self._similarity_column(params)  # projection comes first
		credits = CREDIT_COLUMNS[(self.actor_id is not None, self.media_id is not None)]  # credit quintuple
		joins = self._credit_joins(params)  # zero, one or two credit aliases
		where = self._where(params)  # AND of active constraints
		order = self._order_by()  # no parameters
		params.append(self.spec.limit)  # LIMIT is always applied

		sql = f"""
		SELECT
		{ENTITY_COLUMN} AS entity,
		{ATOM_COLUMN} AS atom_id,
		name.name AS name,
		{YEAR_COLUMN} AS year,
		{similarity},
		{ATTRS_COLUMN} AS attrs,
		COALESCE(rating.votes, 0) AS votes,
		COALESCE(rating.rank, 0) AS rank,
		{credits}
		FROM name
		LEFT JOIN movie AS m ON name.atom_id = m.atom_id
		LEFT JOIN tvshow AS t ON name.atom_id = t.atom_id
		LEFT JOIN episode AS e ON name.atom_id = e.atom_id
		LEFT JOIN name AS et ON e.tvshow_atom_id = et.atom_id
		LEFT JOIN actor AS a ON name.atom_id = a.atom_id
		LEFT JOIN rating ON name.atom_id = rating.atom_id
		{joins}
		WHERE
		{where}
		{order}
		LIMIT ?
		"""
		logger.debug(f"[Compiler] {len(params)} params: {params}")
		return CompiledQuery(sql=sql, params=tuple(params))

	def _similarity_column(self, params: List) -> str:
		if self.use_similarity:
			params.append(self.spec.name)
			return "similarity(name.name, ?) AS similarity"
		return "-1 AS similarity"

	def _credit_joins(self, params: List) -> str:
		joins = []
		if self.actor_id is not None:
			joins.append(
				"LEFT JOIN credit AS c_actor ON "
				"name.atom_id = c_actor.media_atom_id AND c_actor.actor_atom_id = ?"
			)
			params.append(self.actor_id)
		if self.media_id is not None:
			joins.append(
				"LEFT JOIN credit AS c_media ON "
				"a.atom_id = c_media.actor_atom_id AND c_media.media_atom_id = ?"
			)
			params.append(self.media_id)
		return "\n\t\t".join(joins)

	def _where(self, params: List) -> str:
		spec = self.spec
		conj = [f"{ATOM_COLUMN} IS NOT NULL"]  # names without an entity row are skipped
		conj.extend(self._where_credits(params))

		if spec.entities:
			conj.append(f"{ENTITY_COLUMN} IN ({', '.join('?' for _ in spec.entities)})")
			params.extend(kind.value for kind in spec.entities)
		if spec.atom is not None:
			conj.append(f"{ATOM_COLUMN} = ?")
			params.append(spec.atom)
		for dimension, col, episodes_only in RANGE_COLUMNS:
			r = spec.ranges.get(dimension)
			if r is None:
				continue  # inactive dimension
			cond = _range_cond(col, r, params)
			conj.append(f"(e.atom_id IS NULL OR ({cond}))" if episodes_only else cond)
		if spec.no_tv_movie:
			conj.append("(m.atom_id IS NULL OR NOT m.tv)")
		if spec.no_video_movie:
			conj.append("(m.atom_id IS NULL OR NOT m.video)")
		if spec.name:
			if self.use_similarity:
				conj.append("similarity(name.name, ?) >= ?")
				params.extend([spec.name, self.fuzzy_threshold])
			elif "%" in spec.name or "_" in spec.name:
				conj.append("name.name LIKE ?")  # wildcard pattern
				params.append(spec.name)
			else:
				conj.append("name.name = ?")  # exact match
				params.append(spec.name)
		return "\n\t\tAND ".join(conj)

	def _where_credits(self, params: List) -> List[str]:
		spec = self.spec
		conj = []
		actor_id, media_id = self.actor_id, self.media_id
		if actor_id is not None and media_id is not None:
			# the credit of that actor in that media, seen from either side
			if spec.sub_id("movie") is None and spec.sub_id("tvshow") is not None:
				# or an episode of that show the actor is credited in
				conj.append(
					"(c_actor.media_atom_id = ? OR c_media.actor_atom_id = ? "
					"OR (e.tvshow_atom_id = ? AND c_actor.media_atom_id IS NOT NULL))"
				)
				params.extend([media_id, actor_id, media_id])
			else:
				conj.append("(c_actor.media_atom_id = ? OR c_media.actor_atom_id = ?)")
				params.extend([media_id, actor_id])
		elif actor_id is not None:
			conj.append("c_actor.media_atom_id IS NOT NULL")
		elif spec.sub_id("movie") is None and spec.sub_id("tvshow") is not None:
			# episodes are tied to their show directly, not through credits
			conj.append("(e.tvshow_atom_id = ? OR c_media.actor_atom_id IS NOT NULL)")
			params.append(spec.sub_id("tvshow"))
		elif media_id is not None:
			conj.append("c_media.actor_atom_id IS NOT NULL")

		billing = spec.ranges.get("billing")
		position = self.position_column
		if position is not None and billing is not None:
			conj.append(_range_cond(position, billing, params))
		return conj

	def _sort_column(self, column: str) -> Optional[str]:
		if column not in QUALIFIED_COLUMNS:
			return None
		qualified = QUALIFIED_COLUMNS[column]
		if qualified is None:
			return self.position_column
		return qualified

	def _order_by(self) -> str:
		keys = []
		if self.use_similarity:
			keys.append("similarity DESC NULLS LAST")  # always the primary key
		for order in self.spec.order:
			col = self._sort_column(order.column)
			direction = DIRECTIONS.get(order.direction.lower())
			if col is None or direction is None:
				logger.debug(f"[Compiler] Ignoring sort on '{order.column} {order.direction}'")
				continue
			keys.append(f"{col} {direction} NULLS LAST")
		if not keys:
			return ""  # no ORDER BY at all
		return "ORDER BY " + ", ".join(keys)


def compile_search(spec: SearchSpec, fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD) -> CompiledQuery:
	"""Compile `spec` into SQL text and its positional parameters."""
	return QueryCompiler(spec, fuzzy_threshold).compile()
