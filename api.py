"""
FastAPI server exposing the catalog search API.
Endpoints:
- GET /health: basic health check
- GET /search?q=...: runs a directive query, e.g. "{show:supernatural} {s:1}"
- GET /commands: every directive with its synonyms and description

Startup opens the store named by the CATALOG_SEARCH_* environment variables.
Ambiguous sub-searches are not interactive here: the top hit is used.

Run: uvicorn api:app --reload
"""

# Import standard libraries for timing
import time  # measure startup and request latencies
from typing import List, Optional  # precise typing for clarity

# Import FastAPI for building the web API and Pydantic for response models
from fastapi import FastAPI, HTTPException, Query  # FastAPI primitives
from pydantic import BaseModel  # response schema definitions

# Import our internal modules for configuration and search
from catalog_search.commands import commands  # directive help
from catalog_search.config import Settings, configure_logging, open_store  # env settings
from catalog_search.errors import MalformedDirective, StorageError, SubSearchFailure
from catalog_search.searcher import Searcher  # core search engine
from catalog_search.storage import Store

# Import loguru for simple, structured console logging
from loguru import logger  # convenient console logger

# Instantiate the FastAPI application with metadata
app = FastAPI(title="Catalog Search API", version="1.0.0")  # web app

# Globals that hold the searcher and its store
SEARCHER: Optional[Searcher] = None  # will point to the initialized searcher
STORE: Optional[Store] = None
STARTUP_TIME_S: float = 0.0  # measures how long startup took


class RatingOut(BaseModel):
	votes: int
	rank: int


class CreditOut(BaseModel):
	actor_id: int
	media_id: int
	character: str
	position: int
	attrs: str


# Pydantic model for a single search result
class ResultOut(BaseModel):
	entity: str  # movie, tvshow, episode or actor
	id: int  # atom id
	name: str
	year: int
	attrs: str  # e.g. "(TV)" or "(TV show: X, #1.2)"
	similarity: float  # -1 when not computed
	rating: RatingOut
	credit: CreditOut


# Pydantic model for the complete search response payload
class SearchResponse(BaseModel):
	query: str  # original query string
	elapsed_ms: float  # server-side search time in ms
	results: List[ResultOut]


class CommandOut(BaseModel):
	name: str
	synonyms: List[str]
	description: str


# FastAPI startup hook to initialize the searcher once
@app.on_event("startup")
async def startup_event():
	"""Open the configured store and build the searcher."""
	global SEARCHER, STORE, STARTUP_TIME_S  # refer to module-level globals
	start = time.time()  # start timer for startup latency

	settings = Settings.from_env()  # read CATALOG_SEARCH_* variables
	configure_logging(settings.log_level)
	logger.info(f"[API] Startup: opening {settings.backend} store...")  # log intent

	STORE = open_store(settings)
	SEARCHER = Searcher(STORE, good_threshold=settings.good_threshold)

	STARTUP_TIME_S = time.time() - start  # elapsed seconds
	logger.info(f"[API] Startup complete in {STARTUP_TIME_S:.2f}s.")  # summary log


@app.on_event("shutdown")
async def shutdown_event():
	if STORE is not None:
		STORE.close()


# Simple health endpoint for readiness checks
@app.get("/health")
async def health():
	"""Return minimal health info for liveness/readiness probes."""
	return {
		"status": "ok",  # constant indicator
		"engine_ready": SEARCHER is not None,  # True if searcher initialized
		"fuzzy": STORE.fuzzy_available() if STORE is not None else False,
		"startup_seconds": round(STARTUP_TIME_S, 2)  # startup latency
	}


@app.get("/commands", response_model=List[CommandOut])
async def list_commands():
	"""Describe every query directive."""
	return [CommandOut(name=c.name, synonyms=list(c.synonyms), description=c.description) for c in commands()]


# Main search endpoint that accepts a directive query.
# Store queries block, so this is a plain def run in the FastAPI threadpool
@app.get("/search", response_model=SearchResponse)
def search(q: str = Query(..., description="Search query with optional {directives}")):
	"""Execute a search and return the results in query order."""
	if SEARCHER is None:  # searcher must be ready to serve
		logger.warning("[API] Search requested but searcher not initialized")  # guard log
		raise HTTPException(status_code=503, detail="Searcher not initialized")

	start = time.time()  # start timer
	logger.debug(f"[API] /search q='{q}'")  # debug log of input
	try:
		results = SEARCHER.search(q)
	except (MalformedDirective, SubSearchFailure) as e:
		raise HTTPException(status_code=400, detail=str(e)) from e
	except StorageError as e:
		logger.error(f"[API] Storage failure for q='{q}': {e}")
		raise HTTPException(status_code=503, detail=str(e)) from e
	elapsed_ms = (time.time() - start) * 1000  # compute ms
	logger.info(f"[API] /search served {len(results)} results in {elapsed_ms:.2f} ms")  # summary

	items = [
		ResultOut(
			entity=r.entity.value,
			id=r.id,
			name=r.name,
			year=r.year,
			attrs=r.attrs,
			similarity=round(r.similarity, 3),
			rating=RatingOut(votes=r.rating.votes, rank=r.rating.rank),
			credit=CreditOut(
				actor_id=r.credit.actor_id,
				media_id=r.credit.media_id,
				character=r.credit.character,
				position=r.credit.position,
				attrs=r.credit.attrs,
			),
		)
		for r in results
	]
	return SearchResponse(query=q, elapsed_ms=round(elapsed_ms, 2), results=items)
