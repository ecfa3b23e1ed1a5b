"""
Query processing for the search front end and CLI.
"""
import logging

from tootsearch.common.config import MAX_RESULTS
from tootsearch.common.errors import QueryParseError

logger = logging.getLogger("search")


class QueryProcessor:
    """
    Parses a free-text query, runs it against the index and returns hits
    ordered by descending score. Result fields come from the stored
    documents only; nothing is re-fetched from the instance.
    """
    def __init__(self, index, max_results=MAX_RESULTS):
        self.index = index
        self.max_results = max_results

    def search(self, query_string, max_results=None):
        """
        Return a one-shot iterator of SearchHit.

        Raises QueryParseError for an empty or unparsable query and
        QueryExecutionError if the index fails.
        """
        if query_string is None or not query_string.strip():
            raise QueryParseError("Empty query")

        limit = self.max_results if max_results is None else max_results
        if limit < 1:
            raise QueryParseError(f"max_results must be at least 1, got {limit}")
        logger.info(f"Searching index for: '{query_string}' (max results: {limit})")
        query = self.index.parse(query_string)
        hits = self.index.execute(query, limit=limit, highlight=True)

        # sorted() is stable, so engine order breaks ties
        hits = sorted(hits, key=lambda hit: hit.score, reverse=True)
        logger.info(f"Search returned {len(hits)} results")
        return iter(hits)
