"""
Exceptions raised while building, resolving or running a search.
"""


class SearchError(Exception):
	"""Base class for every error the search core reports."""


class MalformedDirective(SearchError, ValueError):
	"""A directive value could not be understood (bad integer, range, sort spec, missing query)."""

	def __init__(self, directive: str, message: str):
		self.directive = directive
		super().__init__(f"{message} (in '{{{directive}}}')")


class SubSearchFailure(SearchError):
	"""The query given to a sub-search directive was itself invalid."""

	def __init__(self, directive: str, cause: Exception):
		self.directive = directive
		super().__init__(f"Error with sub-search for {directive}: {cause}")


class DisambiguationError(SearchError):
	"""Raised by chooser callbacks to abort a search."""


class StorageError(SearchError):
	"""The storage backend failed to run a query."""
