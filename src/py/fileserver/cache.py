from typing import Callable, TypeAlias

from .http.model import HTTPRequest

# Returns the `Cache-Control` value for the request of the given resolved
# store path. An empty string means that no header is set.
CacheControlFunction: TypeAlias = Callable[[HTTPRequest, str], str]

NO_CACHE: str = "no-cache"
IMMUTABLE: str = "public, max-age=31536000, immutable"


def noCache(request: HTTPRequest, path: str) -> str:
	"""Forces revalidation of every file, equivalent to
	`public, max-age=0, must-revalidate`."""
	return NO_CACHE


def immutable(*exclude: str) -> CacheControlFunction:
	"""Marks every file as immutable for a year, except for the `exclude`d
	paths which are revalidated. This is meant for content-hashed build
	artifacts, excluding the entry documents like `index.html`."""
	excluded: frozenset[str] = frozenset(exclude)

	def cacheControl(request: HTTPRequest, path: str) -> str:
		return NO_CACHE if path in excluded else IMMUTABLE

	return cacheControl


# EOF
