"""
Search directives.
A directive is a '{name:value}' token inside a query string. This module holds
the single table of every directive (with synonyms and a description for help
output) and builds a SearchSpec from a query string.
"""

from dataclasses import dataclass, field  # immutable directive records
from typing import Callable, Dict, List, Optional, Tuple  # type annotations

# Import loguru for console logging
from loguru import logger  # simple structured logger

# Import project modules for the spec tree and token helpers
from .errors import MalformedDirective, SubSearchFailure  # directive errors
from .models import EntityKind, IntRange, SearchSpec, SortOrder, SubSearch  # spec tree
from .query_parser import arg_option, int_range, parse_int, query_tokens  # tokenizer and ranges

# Open-ended bounds for the range directives
MAX_YEAR = 3000
MAX_RANK = 100
MAX_VOTES = 1000000000
MAX_BILLED = 1000000
MAX_SEASON = 1000000
MAX_EPISODE = 1000000

# Direction used by {sort:column} when none is given; unknown columns sort ascending
DEFAULT_ORDERS = {
	"entity": "asc", "atom_id": "asc", "name": "asc", "title": "asc",
	"year": "desc", "attrs": "asc", "similarity": "desc",

	"season": "asc", "episode": "asc", "episode_num": "asc",

	"rank": "desc", "rating": "desc", "votes": "desc",

	"billing": "asc", "billed": "asc",
}

SORT_DIRECTIONS = ("asc", "desc")

# A handler applies a directive value to the spec and raises MalformedDirective on bad input
Handler = Callable[[SearchSpec, str, str], None]


@dataclass(frozen=True)
class Directive:
	name: str
	synonyms: Tuple[str, ...]
	description: str
	handler: Handler = field(repr=False, compare=False)


@dataclass(frozen=True)
class CommandHelp:
	"""Public view of a directive, used for help output."""
	name: str
	synonyms: Tuple[str, ...]
	description: str


def _range(dimension: str, max_value: int) -> Handler:
	def handler(spec: SearchSpec, name: str, value: str) -> None:
		try:
			lo, hi = int_range(value, 0, max_value)  # empty ends take the bounds
		except ValueError as e:
			raise MalformedDirective(name, str(e)) from e
		spec.ranges[dimension] = IntRange(lo, hi)
	return handler


def _sub_spec(spec: SearchSpec, name: str, value: str) -> SearchSpec:
	if not value:
		raise MalformedDirective(name, f"No query found for '{name}'.")
	try:
		sub = parse_query(value, fuzzy=spec.fuzzy)  # full query, recursively
	except MalformedDirective as e:
		raise SubSearchFailure(name, e) from e
	except SubSearchFailure as e:
		raise SubSearchFailure(name, e) from e
	return sub


def _attach(spec: SearchSpec, role: str, sub: SearchSpec, what: str, kinds: Tuple[EntityKind, ...]) -> None:
	for kind in kinds:
		sub.add_entity(kind)
	sub.what = what
	spec.subs[role] = SubSearch(sub)  # resolved later by the searcher


def _entity(kind: EntityKind, role: str, what: str) -> Handler:
	"""Without a value the directive filters by kind, with one it is a sub-search."""
	def handler(spec: SearchSpec, name: str, value: str) -> None:
		if not value:
			spec.add_entity(kind)
			return
		_attach(spec, role, _sub_spec(spec, name, value), what, (kind,))
	return handler


def _credits(spec: SearchSpec, name: str, value: str) -> None:
	sub = _sub_spec(spec, name, value)
	kinds = () if sub.entities else (EntityKind.MOVIE, EntityKind.TVSHOW, EntityKind.EPISODE)
	_attach(spec, "movie", sub, "media", kinds)


def _cast(spec: SearchSpec, name: str, value: str) -> None:
	_attach(spec, "actor", _sub_spec(spec, name, value), "actor", (EntityKind.ACTOR,))


def _show(spec: SearchSpec, name: str, value: str) -> None:
	_attach(spec, "tvshow", _sub_spec(spec, name, value), "TV show", (EntityKind.TVSHOW,))


def _debug(spec: SearchSpec, name: str, value: str) -> None:
	spec.debug = True


def _atom(spec: SearchSpec, name: str, value: str) -> None:
	try:
		spec.atom = parse_int(value)
	except ValueError as e:
		raise MalformedDirective(name, f"Invalid integer '{value}' for atom id") from e


def _no_tv(spec: SearchSpec, name: str, value: str) -> None:
	spec.no_tv_movie = True


def _no_video(spec: SearchSpec, name: str, value: str) -> None:
	spec.no_video_movie = True


def _limit(spec: SearchSpec, name: str, value: str) -> None:
	try:
		spec.limit = parse_int(value)
	except ValueError as e:
		raise MalformedDirective(name, f"Invalid integer '{value}' for limit") from e


def _sort(spec: SearchSpec, name: str, value: str) -> None:
	fields = value.split()  # "column" or "column direction"
	if len(fields) == 0 or len(fields) > 2:
		raise MalformedDirective(name, f"Invalid sort format: '{value}'")
	column = fields[0]
	if len(fields) > 1:
		direction = fields[1].lower()
		if direction not in SORT_DIRECTIONS:
			raise MalformedDirective(name, f"Invalid sort direction '{fields[1]}'; use asc or desc")
	else:
		direction = DEFAULT_ORDERS.get(column, "asc")  # per-column default
	spec.order.append(SortOrder(column, direction))


# Single point of truth about every directive. Built once, never mutated.
DIRECTIVES: Tuple[Directive, ...] = (
	Directive(
		"movie", (),
		"Restricts results to only include movies. Note that this may be "
		"combined with other entity types to form a disjunction. With a value, "
		"e.g. {movie:the matrix}, it is a sub-search for a movie.",
		_entity(EntityKind.MOVIE, "movie", "movie"),
	),
	Directive(
		"tvshow", ("tv",),
		"Restricts results to only include TV shows. Note that this may be "
		"combined with other entity types to form a disjunction. With a value, "
		"e.g. {tv:the simpsons}, it is a sub-search for a TV show.",
		_entity(EntityKind.TVSHOW, "tvshow", "TV show"),
	),
	Directive(
		"episode", (),
		"Restricts results to only include episodes. Note that this may be "
		"combined with other entity types to form a disjunction. With a value "
		"it is a sub-search for an episode.",
		_entity(EntityKind.EPISODE, "episode", "episode"),
	),
	Directive(
		"actor", (),
		"Restricts results to only include actors. Note that this may be "
		"combined with other entity types to form a disjunction. With a value "
		"it is a sub-search for an actor.",
		_entity(EntityKind.ACTOR, "actor", "actor"),
	),
	Directive(
		"credits", (),
		"A sub-search for media entities that restricts results to only "
		"actors credited in the media item returned from this sub-search.",
		_credits,
	),
	Directive(
		"cast", (),
		"A sub-search for cast entities that restricts results to only media "
		"entities in which the cast member appeared.",
		_cast,
	),
	Directive(
		"show", (),
		"A sub-search for TV shows that restricts results to only episodes "
		"in the TV show.",
		_show,
	),
	Directive(
		"debug", (),
		"When enabled, the SQL queries used in the search are logged.",
		_debug,
	),
	Directive(
		"id", ("atom",),
		"Precisely selects a single identity with the atom identifier given. "
		"e.g., {id:123} returns the entity with id 123. Note that atom "
		"identifiers can change when the database is rebuilt.",
		_atom,
	),
	Directive(
		"years", ("year",),
		"Only show search results for the year or years specified. "
		"e.g., {years:1990-1999} only shows movies in the 90s.",
		_range("year", MAX_YEAR),
	),
	Directive(
		"rank", (),
		"Only show search results with the rank or ranks specified. "
		"e.g., {rank:70-} only shows entities with a rank of 70 or better. "
		"Ranks are on a scale of 0 to 100, where 100 is the best.",
		_range("rating", MAX_RANK),
	),
	Directive(
		"votes", (),
		"Only show search results with ranks that have the vote count "
		"specified. e.g., {votes:10000-} only shows entities with a rank that "
		"has 10,000 or more votes.",
		_range("votes", MAX_VOTES),
	),
	Directive(
		"billed", ("billing",),
		"Only show search results with credits with the billing position "
		"specified. e.g., {billed:1-5} only shows movies where the actor was "
		"in the top 5 billing order (or only shows actors of a movie in the "
		"top 5 billing positions).",
		_range("billing", MAX_BILLED),
	),
	Directive(
		"seasons", ("s", "season"),
		"Only show search results for the season or seasons specified. "
		"e.g., {seasons:1} only shows episodes from the first season of a TV "
		"show. This only filters episodes; movies and TV shows are still "
		"returned otherwise.",
		_range("season", MAX_SEASON),
	),
	Directive(
		"episodes", ("e",),
		"Only show search results for the episode or episodes specified. "
		"e.g., {episodes:1-5} only shows the first five episodes of a season. "
		"This only filters episodes; movies and TV shows are still returned "
		"otherwise.",
		_range("episode", MAX_EPISODE),
	),
	Directive(
		"notv", (),
		"Removes 'made for TV' movies from the search results.",
		_no_tv,
	),
	Directive(
		"novideo", (),
		"Removes 'made for video' movies from the search results.",
		_no_video,
	),
	Directive(
		"limit", (),
		"Specifies a limit on the total number of search results returned.",
		_limit,
	),
	Directive(
		"sort", (),
		"Sorts the search results according to the field given. It may be "
		"specified multiple times for more specific sorting. In a fuzzy "
		"search results are always sorted by similarity first. "
		"e.g., {sort:episode desc} sorts episodes from biggest to smallest.",
		_sort,
	),
)


def _index(directives: Tuple[Directive, ...]) -> Dict[str, Directive]:
	by_name: Dict[str, Directive] = {}
	for d in directives:
		by_name[d.name] = d
		for synonym in d.synonyms:
			by_name[synonym] = d
	return by_name


_BY_NAME = _index(DIRECTIVES)


def lookup(name: str) -> Optional[Directive]:
	"""Find a directive by canonical name or synonym. Names are case-sensitive."""
	return _BY_NAME.get(name)


def commands() -> List[CommandHelp]:
	"""All directives sorted by name, for help output."""
	return sorted(
		(CommandHelp(d.name, d.synonyms, d.description) for d in DIRECTIVES),
		key=lambda c: c.name,
	)


def parse_query(query: str, fuzzy: bool = False) -> SearchSpec:
	"""
	Build a SearchSpec from a query string.
	Directive tokens mutate the spec; every other token is joined (in order)
	into the free-text name. Any directive error aborts the whole parse.
	`fuzzy` says whether the storage backend can compute similarity.
	"""
	spec = SearchSpec(fuzzy=fuzzy)  # fresh spec per query
	words: List[str] = []  # free-text tokens, in order
	for token in query_tokens(query):
		name, value = arg_option(token)  # ("", "") for plain words
		directive = lookup(name) if name else None  # canonical entry or None
		if directive is None:
			if name:
				logger.warning(f"[Commands] Unknown directive '{name}', treating '{token}' as text")
			words.append(token)
			continue
		logger.debug(f"[Commands] {{{name}}} -> {directive.name} value='{value}'")
		directive.handler(spec, name, value)  # raises on bad values
	spec.name = " ".join(words)  # name query

	# Similarity scores make no sense for wildcard patterns
	if "%" in spec.name or "_" in spec.name:
		spec.fuzzy = False
	return spec
