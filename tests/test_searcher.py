"""
End-to-end tests: parse, resolve sub-searches, run against a small SQLite
catalog and map the rows.
Run: python tests/test_searcher.py
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
	sys.path.insert(0, str(ROOT))

from sample_catalog import CountingStore, build_store

from catalog_search.errors import DisambiguationError, StorageError
from catalog_search.models import EntityKind, Result, SearchSpec
from catalog_search.searcher import Searcher, pick
from catalog_search.storage import SQLiteStore


def assert_equal(actual, expected, msg):
	if actual != expected:
		raise AssertionError(f"{msg} | expected={expected}, actual={actual}")


def assert_true(cond, msg):
	if not cond:
		raise AssertionError(msg)


def ids(results):
	return sorted(r.id for r in results)


def fake(similarities):
	return [Result(EntityKind.TVSHOW, i + 1, f"show {i}", 2000, "", s) for i, s in enumerate(similarities)]


def refuse(results, what):
	raise AssertionError(f"chooser should not be called for {what}")


def test_pick():
	spec = SearchSpec(good_threshold=0.25, chooser=refuse)
	assert_equal(pick(spec, []), None, "no results")
	assert_equal(pick(spec, fake([0.2])).id, 1, "single result")
	assert_equal(pick(spec, fake([0.9, 0.5])).id, 1, "clear winner is auto-picked")

	calls = []

	def second(results, what):
		calls.append((len(results), what))
		return results[1]

	spec = SearchSpec(good_threshold=0.25, chooser=second, what="TV show")
	assert_equal(pick(spec, fake([0.6, 0.5])).id, 2, "close call goes to the chooser")
	assert_equal(calls, [(2, "TV show")], "chooser gets every candidate and the label")
	assert_equal(pick(spec, fake([-1, -1, -1])).id, 2, "no scores goes to the chooser")

	spec = SearchSpec(good_threshold=0.25)
	assert_equal(pick(spec, fake([0.6, 0.5])).id, 1, "without a chooser the top hit wins")


def test_exact_movie_search():
	searcher = Searcher(build_store())
	rs = searcher.search("Citizen Kane {movie}")
	assert_equal(ids(rs), [1, 2], "both movies named Citizen Kane")
	by_id = {r.id: r for r in rs}
	assert_equal(by_id[2].attrs, "(TV)", "made for TV flag")
	assert_equal(by_id[1].attrs, "", "no flags")
	assert_equal(by_id[1].year, 1941, "year")
	assert_equal(by_id[1].rating.rank, 83, "rating rank")
	assert_equal(by_id[1].similarity, -1.0, "no similarity without fuzzy")
	assert_equal(by_id[1].entity, EntityKind.MOVIE, "entity kind")

	assert_equal(ids(searcher.search("Citizen Kane {notv}")), [1], "TV movies excluded")
	assert_equal(ids(searcher.search("The Matrix%")), [3, 4], "wildcard pattern")
	assert_equal(ids(searcher.search("The Matrix% {novideo}")), [3], "video movies excluded")
	assert_equal(ids(searcher.search("{id:3}")), [3], "atom id")
	assert_equal(ids(searcher.search("{rank:85-} {movie}")), [3], "rank range")


def test_attrs_and_sorting():
	searcher = Searcher(build_store())
	rs = searcher.search("{tvshow} {sort:year}")
	assert_equal([r.id for r in rs], [10, 11], "year descending")
	assert_equal([r.attrs for r in rs], ["2005-2020", "1999-????"], "show year spans")

	rs = searcher.search("{episode} {sort:season} {sort:episode} {sort:name} {limit:2}")
	assert_equal(len(rs), 2, "limit")
	assert_true(all(r.entity == EntityKind.EPISODE for r in rs), "only episodes")

	rs = searcher.search("Wendigo")
	assert_equal(rs[0].attrs, "(TV show: Supernatural, #1.2)", "episode attrs")
	assert_equal(ids(searcher.search("{actor} {sort:nonsense}")), [30, 31, 32, 33], "unknown sort column ignored")


def test_show_sub_search():
	store = CountingStore(build_store())
	searcher = Searcher(store)
	rs = searcher.search("{show:Supernatural}{s:1}")
	assert_equal(len(store.statements), 2, "sub-search then outer search")
	assert_equal(store.statements[0][1][-1], 30, "sub-search runs with its own limit")
	episodes = [r for r in rs if r.entity == EntityKind.EPISODE]
	assert_equal(ids(episodes), [20, 21], "season 1 of the show via the parent relation")
	actors = {r.id: r for r in rs if r.entity == EntityKind.ACTOR}
	assert_equal(sorted(actors), [30, 31], "cast of the show is credited")
	assert_equal(actors[30].credit.character, "Dean Winchester", "credit character")
	assert_equal(actors[31].credit.position, 2, "credit position")

	assert_equal(ids(searcher.search("{show:Supernatural} {s:1} {episode}")), [20, 21], "episodes only")
	assert_equal(ids(searcher.search("{show:Supernatural} {s:2-} {e:1} {episode}")), [22], "season and episode ranges")


def test_credit_sub_searches():
	searcher = Searcher(build_store())
	rs = searcher.search("{cast:Keanu Reeves} {sort:year}")
	assert_equal([r.id for r in rs], [4, 3], "media the actor appeared in")
	assert_equal(rs[0].credit.attrs, "(archive footage)", "credit attrs")
	assert_equal(rs[1].credit.character, "Neo", "credit character")
	assert_equal(ids(searcher.search("{cast:Keanu Reeves} {billed:1}")), [3], "billing position")

	rs = searcher.search("{credits:{notv} Citizen Kane}")
	assert_equal(ids(rs), [32], "actors credited in the movie")
	assert_equal(rs[0].credit.media_id, 1, "credit media id")

	rs = searcher.search("{movie:The Matrix} {actor:Keanu Reeves}")
	assert_equal(ids(rs), [3, 33], "actor in a movie: the media row and the actor row")


def test_show_and_cast_sub_searches():
	store = build_store()
	store.connection.execute(
		"INSERT INTO credit (actor_atom_id, media_atom_id, character, position, attrs) VALUES (?, ?, ?, ?, ?)",
		(30, 20, "Dean Winchester", 1, ""),
	)
	store.connection.commit()
	searcher = Searcher(store)
	rs = searcher.search("{show:Supernatural} {cast:Jensen Ackles} {episode}")
	assert_equal(ids(rs), [20], "episodes of the show the actor is credited in")
	assert_equal(rs[0].credit.character, "Dean Winchester", "episode credit")
	assert_equal(
		searcher.search("{show:Supernatural} {cast:Jared Padalecki} {episode}"), [], "no episode credits for this actor"
	)


def test_empty_sub_search_short_circuits():
	store = CountingStore(build_store())
	searcher = Searcher(store)
	assert_equal(searcher.search("{show:Nothing Like This} {episode}"), [], "no show, no episodes")
	assert_equal(len(store.statements), 1, "outer query never runs")


def test_reversed_range_is_empty():
	searcher = Searcher(build_store())
	assert_equal(searcher.search("{years:2020-1990}"), [], "min > max matches nothing")


def test_fuzzy_resolution():
	store = build_store(fuzzy=True)
	searcher = Searcher(store, good_threshold=0.2, chooser=refuse)
	rs = searcher.search("{show:supernatural} {s:1} {episode}")
	assert_equal(ids(rs), [20, 21], "clear fuzzy winner picked without asking")

	rs = searcher.search("supernatural {tvshow}")
	assert_equal([r.id for r in rs], [10, 11], "most similar first")
	assert_true(rs[0].similarity > rs[1].similarity >= 0.3, "similarity scores")

	seen = []

	def choose_second(results, what):
		seen.append(what)
		return results[1]

	searcher = Searcher(store, good_threshold=0.5, chooser=choose_second)
	assert_equal(ids(searcher.search("{show:supernatural} {episode}")), [23], "chooser picked the other show")
	assert_equal(seen, ["TV show"], "chooser asked once with the role label")

	searcher = Searcher(store, good_threshold=0.5, chooser=lambda results, what: None)
	assert_equal(searcher.search("{show:supernatural} {episode}"), [], "chooser declined")


def test_chooser_error_propagates():
	def fail(results, what):
		raise DisambiguationError(f"cancelled {what}")

	searcher = Searcher(build_store(fuzzy=True), good_threshold=0.9, chooser=fail)
	try:
		searcher.search("{show:supernatural}")
	except DisambiguationError as e:
		assert_equal(str(e), "cancelled TV show", "error passed through unchanged")
	else:
		raise AssertionError("chooser error should abort the search")


def test_storage_error():
	searcher = Searcher(SQLiteStore(":memory:", fuzzy=False))  # no schema
	try:
		searcher.search("anything")
	except StorageError as e:
		assert_true("no such table" in str(e), "driver message kept")
	else:
		raise AssertionError("missing tables should raise StorageError")

	try:
		searcher.search("{cast:Keanu Reeves}")
	except StorageError as e:
		assert_true(str(e).startswith("Error with actor sub-search: "), "failing sub-search named")
		assert_true("no such table" in str(e), "driver message kept")
	else:
		raise AssertionError("a failing sub-search should raise StorageError")


def main():
	print("Running searcher tests...")
	test_pick()
	print(" - pick ok")
	test_exact_movie_search()
	test_attrs_and_sorting()
	test_reversed_range_is_empty()
	print(" - plain searches ok")
	test_show_sub_search()
	test_credit_sub_searches()
	test_show_and_cast_sub_searches()
	test_empty_sub_search_short_circuits()
	print(" - sub-searches ok")
	test_fuzzy_resolution()
	test_chooser_error_propagates()
	test_storage_error()
	print("All searcher tests passed!")


if __name__ == '__main__':
	main()
