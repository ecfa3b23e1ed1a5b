"""
Full-text index of harvested statuses, backed by Whoosh.
"""
import logging
import os
import threading
import traceback

from whoosh import index as whoosh_index
from whoosh.analysis import LanguageAnalyzer
from whoosh.fields import Schema, ID, STORED, TEXT
from whoosh.highlight import ContextFragmenter, HtmlFormatter
from whoosh.qparser import FuzzyTermPlugin, MultifieldParser, OrGroup
from whoosh.query import NullQuery, Term
from whoosh.scoring import BM25F

from tootsearch.common.config import INDEX_LANGUAGE
from tootsearch.common.errors import (
    IndexOpenError, IndexWriteError, QueryExecutionError, QueryParseError,
)
from tootsearch.models import SearchHit

logger = logging.getLogger("indexer")

SEARCH_FIELDS = ['name', 'message']
WRITER_TIMEOUT = 10.0  # seconds to wait for the on-disk writer lock


def build_schema(language=INDEX_LANGUAGE):
    """
    name and message are analyzed with the language analyzer; url and the
    raw HTML content are stored for display and never tokenized.
    """
    return Schema(
        id=ID(stored=True, unique=True),
        name=TEXT(stored=True, analyzer=LanguageAnalyzer(language)),
        message=TEXT(stored=True, analyzer=LanguageAnalyzer(language)),
        url=STORED,
        content=STORED,
    )


class SearchIndex:
    """
    Durable inverted index with upsert-by-ID.

    Writers are serialized by a lock that searches never take: each search
    runs on a searcher snapshot of the last commit, so queries keep running
    while a batch is being written and never see a half-written document.
    """
    def __init__(self, ix, index_dir):
        self.ix = ix
        self.index_dir = index_dir
        self._write_lock = threading.Lock()

    @classmethod
    def open(cls, index_dir, language=INDEX_LANGUAGE):
        """Open the index in index_dir, creating it on first use."""
        try:
            os.makedirs(index_dir, exist_ok=True)
            if whoosh_index.exists_in(index_dir):
                logger.info(f"Opening existing index in {index_dir}")
                ix = whoosh_index.open_dir(index_dir)
            else:
                logger.info(f"Creating search index in {index_dir} (language: {language})")
                ix = whoosh_index.create_in(index_dir, build_schema(language))
        except Exception as e:
            raise IndexOpenError(f"Error opening index {index_dir}: {e}") from e
        return cls(ix, index_dir)

    def close(self):
        self.ix.close()

    # Writes
    def upsert(self, documents):
        """Add or replace documents by ID in a single commit."""
        documents = list(documents)
        if not documents:
            return 0

        with self._write_lock:
            try:
                writer = self.ix.writer(timeout=WRITER_TIMEOUT)
            except Exception as e:
                raise IndexWriteError(f"Could not obtain index writer: {e}") from e
            try:
                for doc in documents:
                    writer.update_document(**doc.fields())
                writer.commit()
            except Exception as e:
                writer.cancel()
                logger.error(traceback.format_exc())
                raise IndexWriteError(f"Error indexing {len(documents)} documents: {e}") from e

        logger.debug(f"Committed {len(documents)} documents")
        return len(documents)

    # Reads
    def doc_count(self):
        with self.ix.searcher() as searcher:
            return searcher.doc_count()

    def count(self, doc_id):
        """Number of live documents stored under doc_id."""
        with self.ix.searcher() as searcher:
            return len(list(searcher.docs_for_query(Term('id', str(doc_id)))))

    def get(self, doc_id):
        """Stored fields of doc_id, or None."""
        with self.ix.searcher() as searcher:
            return searcher.document(id=str(doc_id))

    def parse(self, query_string):
        """Parse a free-text query over name and message."""
        parser = MultifieldParser(SEARCH_FIELDS, schema=self.ix.schema, group=OrGroup)
        parser.add_plugin(FuzzyTermPlugin())
        try:
            query = parser.parse(query_string)
        except Exception as e:
            raise QueryParseError(f"Could not parse query {query_string!r}: {e}") from e
        if query is NullQuery:
            raise QueryParseError(f"Query {query_string!r} contains no searchable terms")
        logger.debug(f"Parsed query: {query}")
        return query

    def execute(self, query, limit=None, highlight=True):
        """Run a parsed query and return SearchHits in engine order."""
        try:
            with self.ix.searcher(weighting=BM25F()) as searcher:
                results = searcher.search(query, limit=limit, scored=True, terms=True)
                if highlight:
                    results.fragmenter = ContextFragmenter(maxchars=150, surround=50)
                    results.formatter = HtmlFormatter(tagname='span', classname='highlight')

                # Highlights need the searcher open, so build hits here
                hits = []
                for hit in results:
                    fragments = {}
                    if highlight:
                        for field in SEARCH_FIELDS:
                            text = hit.highlights(field)
                            if text:
                                fragments[field] = text
                    hits.append(SearchHit(
                        id=hit['id'],
                        score=float(hit.score or 0.0),
                        name=hit.get('name', ''),
                        url=hit.get('url', ''),
                        message=hit.get('message', ''),
                        content=hit.get('content', ''),
                        highlights=fragments,
                    ))
                return hits
        except Exception as e:
            logger.error(f"Error executing query {query}: {e}")
            logger.error(traceback.format_exc())
            raise QueryExecutionError(f"Error executing query: {e}") from e
