"""Repository discovery using the GitHub code search API.

Discovery searches for the migration's old string inside its target file,
collects every hit across pages and folds the hits into one record per
repository. Default branches are not fetched per hit; a separate enrichment
pass makes one metadata call per deduplicated repository.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import requests
from github import GithubException, RateLimitExceededException

from . import github_utils as ghu
from .exceptions import DiscoveryError, RateLimitExceededError
from .models import DEFAULT_BRANCH, DiscoveredRepository

if TYPE_CHECKING:
    from github import Github
    from github.ContentFile import ContentFile
    from github.PaginatedList import PaginatedList

    from .models import MigrationSpec
    from .rate_limit import RateLimiter

logger: logging.Logger = logging.getLogger(__name__)

# GitHub code search never returns more than this many results for a query
MAX_SEARCH_RESULTS: Final = 1000

SEARCH_PAGE_SIZE: Final = ghu.PER_PAGE


@dataclass(frozen=True)
class SearchHit:
    """A single matching file, before deduplication."""

    owner: str
    name: str
    full_name: str
    file_path: str
    file_url: str


def build_search_query(old_string: str, target_filename: str) -> str:
    """Build a code search query: ``"<old_string>" in:file filename:<target_filename>``."""
    return f'"{old_string}" in:file filename:{target_filename}'


def _to_hit(item: ContentFile) -> SearchHit:
    repo = item.repository
    owner = repo.owner.login
    return SearchHit(
        owner=owner,
        name=repo.name,
        full_name=f"{owner}/{repo.name}",
        file_path=item.path,
        file_url=item.html_url,
    )


def _fetch_page(results: PaginatedList[ContentFile], page_number: int, limiter: RateLimiter) -> list[ContentFile]:
    """Fetch one page of search results, honouring a single Retry-After directive."""
    try:
        return results.get_page(page_number)
    except RateLimitExceededException as e:
        retry_after = ghu.retry_after_seconds(e)
        if retry_after is None:
            raise RateLimitExceededError(ghu.rate_limit_reset(e)) from e
        limiter.wait_for_retry_after(retry_after)

    try:
        return results.get_page(page_number)
    except RateLimitExceededException as e:
        raise RateLimitExceededError(ghu.rate_limit_reset(e)) from e


def execute_code_search(client: Github, limiter: RateLimiter, query: str) -> list[SearchHit]:
    """Run a code search and collect hits from every page, up to ``MAX_SEARCH_RESULTS``.

    Raises:
        RateLimitExceededError: If the search quota is exhausted
        DiscoveryError: If any page cannot be fetched
    """
    hits: list[SearchHit] = []
    try:
        results = client.search_code(query)
        page_number = 0
        while True:
            limiter.ensure_search()
            page = _fetch_page(results, page_number, limiter)
            hits.extend(_to_hit(item) for item in page)
            logger.debug(f"Search page {page_number + 1}: {len(page)} results")

            if len(page) < SEARCH_PAGE_SIZE:
                break
            if len(hits) >= MAX_SEARCH_RESULTS:
                # totalCount is filled in from the last fetched page
                total = results.totalCount
                if total > len(hits):
                    logger.warning(f"Search reported {total} results, ignoring all beyond {MAX_SEARCH_RESULTS}")
                break
            page_number += 1
    except GithubException as e:
        msg = f"GitHub API error during code search: {e}"
        raise DiscoveryError(msg) from e
    except requests.RequestException as e:
        msg = f"Network error during code search: {e}"
        raise DiscoveryError(msg) from e

    return hits


def deduplicate_hits(hits: list[SearchHit]) -> list[DiscoveredRepository]:
    """Keep the first hit for each repository, in provider order."""
    repositories: dict[str, DiscoveredRepository] = {}
    for hit in hits:
        if hit.full_name in repositories:
            continue
        repositories[hit.full_name] = DiscoveredRepository(
            owner=hit.owner,
            name=hit.name,
            full_name=hit.full_name,
            matched_file_path=hit.file_path,
            matched_file_url=hit.file_url,
        )
    return list(repositories.values())


def get_default_branch(client: Github, limiter: RateLimiter, full_name: str) -> str:
    """Fetch a repository's default branch.

    Raises:
        GithubException: If the repository metadata cannot be fetched
    """
    limiter.ensure_core()
    repo = client.get_repo(full_name)
    return repo.default_branch or DEFAULT_BRANCH


def enrich_with_default_branches(
    client: Github,
    limiter: RateLimiter,
    repositories: list[DiscoveredRepository],
) -> list[DiscoveredRepository]:
    """Return copies of ``repositories`` with their real default branch.

    A repository whose metadata cannot be fetched, because of an API or a
    network error, keeps ``main``.
    """
    enriched: list[DiscoveredRepository] = []
    for repository in repositories:
        try:
            branch = get_default_branch(client, limiter, repository.full_name)
        except (GithubException, requests.RequestException) as e:
            logger.warning(f"Failed to get default branch for {repository.full_name}, using '{DEFAULT_BRANCH}': {e}")
            enriched.append(repository)
            continue
        enriched.append(dataclasses.replace(repository, default_branch=branch))
    return enriched


def discover_repositories(
    client: Github,
    limiter: RateLimiter,
    migration: MigrationSpec,
    *,
    enrich: bool = False,
) -> list[DiscoveredRepository]:
    """Find repositories whose target file still contains the migration's old string.

    Args:
        client: Authenticated GitHub client
        limiter: Rate limiter consulted before every request
        migration: Migration to search for
        enrich: Whether to fetch each repository's default branch

    Returns:
        One entry per repository, in the order the provider returned them

    Raises:
        RateLimitExceededError: If the search quota is exhausted
        DiscoveryError: If the search fails
    """
    logger.info(f"Discovering repositories for {migration.id}")
    query = build_search_query(migration.old_string, migration.target_filename)
    logger.debug(f"Executing code search: {query}")

    hits = execute_code_search(client, limiter, query)
    repositories = deduplicate_hits(hits)
    logger.info(f"Discovery for {migration.id} complete: {len(hits)} matches in {len(repositories)} repositories")

    if enrich:
        repositories = enrich_with_default_branches(client, limiter, repositories)
    return repositories
