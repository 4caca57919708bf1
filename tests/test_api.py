"""
Tests for the HTTP API against a sample SQLite catalog.
Run: python tests/test_api.py
"""

import inspect
import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
	sys.path.insert(0, str(ROOT))

from fastapi.testclient import TestClient

import api
from sample_catalog import build_store

ENV = {
	"CATALOG_SEARCH_BACKEND": "sqlite",
	"CATALOG_SEARCH_FUZZY": "0",
	"CATALOG_SEARCH_LOG_LEVEL": "WARNING",
}


def assert_equal(actual, expected, msg):
	if actual != expected:
		raise AssertionError(f"{msg} | expected={expected}, actual={actual}")


def assert_true(cond, msg):
	if not cond:
		raise AssertionError(msg)


def run_with_client(check):
	"""Start the app on a fresh catalog file and hand a client to `check`."""
	saved = {key: os.environ.get(key) for key in list(ENV) + ["CATALOG_SEARCH_DB"]}
	with tempfile.TemporaryDirectory() as tmp:
		path = str(Path(tmp) / "catalog.db")
		build_store(path=path).close()
		os.environ.update(ENV)
		os.environ["CATALOG_SEARCH_DB"] = path
		try:
			with TestClient(api.app) as client:
				check(client)
		finally:
			for key, value in saved.items():
				if value is None:
					os.environ.pop(key, None)
				else:
					os.environ[key] = value


def check_health(client):
	body = client.get("/health").json()
	assert_equal(body["status"], "ok", "status")
	assert_equal(body["engine_ready"], True, "searcher initialized at startup")
	assert_equal(body["fuzzy"], False, "fuzzy disabled by env")


def check_search(client):
	resp = client.get("/search", params={"q": "Citizen Kane {movie} {notv}"})
	assert_equal(resp.status_code, 200, "search ok")
	body = resp.json()
	assert_equal(body["query"], "Citizen Kane {movie} {notv}", "query echoed")
	assert_equal(len(body["results"]), 1, "TV movie filtered out")
	r = body["results"][0]
	assert_equal((r["entity"], r["id"], r["year"]), ("movie", 1, 1941), "result fields")
	assert_equal(r["rating"], {"votes": 300000, "rank": 83}, "rating")
	assert_equal(r["similarity"], -1, "similarity not computed")

	body = client.get("/search", params={"q": "{show:Supernatural} {s:1} {episode}"}).json()
	assert_equal(sorted(r["id"] for r in body["results"]), [20, 21], "sub-search through the API")
	assert_equal(body["results"][0]["attrs"].startswith("(TV show: Supernatural"), True, "episode attrs")


def check_errors(client):
	resp = client.get("/search", params={"q": "{limit:abc}"})
	assert_equal(resp.status_code, 400, "malformed directive")
	assert_true("Invalid integer 'abc' for limit" in resp.json()["detail"], "message passed through")

	resp = client.get("/search", params={"q": "{cast:{years:x}}"})
	assert_equal(resp.status_code, 400, "sub-search failure")
	assert_true(resp.json()["detail"].startswith("Error with sub-search for cast"), "wrapped message")

	assert_equal(client.get("/search").status_code, 422, "q is required")


def check_commands(client):
	body = client.get("/commands").json()
	by_name = {c["name"]: c for c in body}
	assert_true("movie" in by_name and "sort" in by_name, "directives listed")
	assert_equal(by_name["tvshow"]["synonyms"], ["tv"], "synonyms listed")
	assert_true(all(c["description"] for c in body), "every directive is described")


def test_search_is_blocking_endpoint():
	# store queries must not run on the event loop
	assert_true(not inspect.iscoroutinefunction(api.search), "/search is a plain def")


def test_api():
	def check(client):
		check_health(client)
		check_search(client)
		check_errors(client)
		check_commands(client)
	run_with_client(check)


def main():
	print("Running API tests...")
	test_search_is_blocking_endpoint()
	test_api()
	print("All API tests passed!")


if __name__ == '__main__':
	main()
