"""
Data models for the catalog search engine.
Defines the entity kinds, the search specification tree and the result records.
"""

# Import dataclass to define simple "record-like" classes without boilerplate
from dataclasses import dataclass, field  # auto-generates __init__, __repr__, etc.
from enum import Enum  # closed set of entity kinds
# Import typing helpers for precise and self-documenting types
from typing import Callable, Dict, List, Optional, Sequence


class EntityKind(str, Enum):
	"""
	The kind of entity a result row came from.
	The value is the string the compiled query emits in its `entity` column.
	"""
	MOVIE = "movie"
	TVSHOW = "tvshow"
	EPISODE = "episode"
	ACTOR = "actor"
	NONE = ""

	@classmethod
	def from_name(cls, name: Optional[str]) -> "EntityKind":
		"""Map an `entity` column value back to a kind; anything unknown is NONE."""
		try:
			return cls(name or "")
		except ValueError:
			return cls.NONE


# Sub-search roles in the order they are resolved
ROLES = ("movie", "tvshow", "episode", "actor")


@dataclass(frozen=True)
class IntRange:
	"""Inclusive integer range. min > max is allowed and simply matches nothing."""
	min: int
	max: int


@dataclass(frozen=True)
class SortOrder:
	column: str  # user-facing column name, resolved through the allow-list at compile time
	direction: str  # "asc" or "desc"


@dataclass(frozen=True)
class Rating:
	votes: int = 0
	rank: int = 0


@dataclass(frozen=True)
class Credit:
	actor_id: int = 0
	media_id: int = 0
	character: str = ""
	position: int = 0
	attrs: str = ""


@dataclass(frozen=True)
class Result:
	"""
	One row of search output.
	similarity is -1 when no fuzzy score was computed for the row.
	"""
	entity: EntityKind
	id: int  # atom id shared by every table
	name: str
	year: int
	attrs: str  # entity specific annotation, e.g. "(TV)" or "1999-2004"
	similarity: float
	rating: Rating = field(default_factory=Rating)
	credit: Credit = field(default_factory=Credit)


# A chooser gets the ranked candidates and a label like "TV show".
# Returning None means "no results"; raising aborts the search.
Chooser = Callable[[List[Result], str], Optional[Result]]


@dataclass
class SubSearch:
	"""A nested search whose single resolved atom id constrains its parent."""
	spec: "SearchSpec"
	atom_id: Optional[int] = None  # written by the resolver

	@property
	def resolved(self) -> bool:
		return self.atom_id is not None


@dataclass
class SearchSpec:
	"""
	Everything one search needs: the free-text name, entity and range filters,
	sub-searches by role, sort keys and the knobs used during disambiguation.
	Built by commands.parse_query; not mutated after compilation starts,
	except for the resolver writing atom ids onto sub-searches.
	"""
	name: str = ""  # free-text name query
	fuzzy: bool = False  # use similarity matching for the name
	entities: List[EntityKind] = field(default_factory=list)  # allowed kinds (disjunction)
	atom: Optional[int] = None  # exact atom id restriction
	ranges: Dict[str, IntRange] = field(default_factory=dict)  # keyed by dimension, e.g. "year"
	subs: Dict[str, SubSearch] = field(default_factory=dict)  # keyed by role, see ROLES
	order: List[SortOrder] = field(default_factory=list)
	limit: int = 30
	no_tv_movie: bool = False
	no_video_movie: bool = False
	good_threshold: float = 0.25
	chooser: Optional[Chooser] = None
	debug: bool = False
	what: str = "entity"  # label shown to a chooser

	def add_entity(self, kind: EntityKind) -> None:
		if kind not in self.entities:
			self.entities.append(kind)

	def sub(self, role: str) -> Optional[SubSearch]:
		return self.subs.get(role)

	def sub_id(self, role: str) -> Optional[int]:
		"""Resolved atom id of the sub-search in `role`, or None."""
		sub = self.subs.get(role)
		return sub.atom_id if sub is not None else None


def result_from_row(row: Sequence) -> Result:
	"""
	Map one row of the compiled query into a Result.
	Column order is fixed by sql_builder: entity, atom_id, name, year,
	similarity, attrs, votes, rank and the five credit columns.
	"""
	(ent, atom_id, name, year, similarity, attrs, votes, rank,
	 c_actor, c_media, c_character, c_position, c_attrs) = row
	return Result(
		entity=EntityKind.from_name(ent),
		id=int(atom_id),
		name=name or "",
		year=int(year or 0),
		attrs=attrs or "",
		similarity=float(similarity if similarity is not None else -1),
		rating=Rating(votes=int(votes or 0), rank=int(rank or 0)),
		credit=Credit(
			actor_id=int(c_actor or 0),
			media_id=int(c_media or 0),
			character=c_character or "",
			position=int(c_position or 0),
			attrs=c_attrs or "",
		),
	)
