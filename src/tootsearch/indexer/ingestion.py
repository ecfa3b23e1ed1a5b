"""
One ingestion cycle: fetch new statuses per hashtag, index them, then
advance the hashtag's watermark.
"""
import logging
import time
import traceback

from tootsearch.common.errors import FetchError, IndexWriteError, PersistenceError
from tootsearch.indexer.mapper import is_empty, map_item

logger = logging.getLogger("ingestion")


class TopicResult:
    """Outcome of one hashtag in one cycle."""
    FETCH_FAILED = 'fetch_failed'
    INDEX_FAILED = 'index_failed'
    PERSIST_FAILED = 'persist_failed'
    EMPTY = 'empty'
    INDEXED = 'indexed'

    def __init__(self, topic, status, fetched=0, indexed=0, watermark=None, error=None):
        self.topic = topic
        self.status = status
        self.fetched = fetched
        self.indexed = indexed
        self.watermark = watermark
        self.error = error

    def __repr__(self):
        return (f"TopicResult({self.topic!r}, {self.status}, fetched={self.fetched}, "
                f"indexed={self.indexed}, watermark={self.watermark})")


class IngestionCycle:
    """
    Drives fetch -> map -> upsert -> advance for every configured hashtag.

    Index writes for a batch complete before its watermark is saved, so a
    crash in between re-fetches and re-upserts the same statuses. A failure
    on one hashtag is logged and the cycle moves on to the next.
    """
    def __init__(self, client, index, watermarks, topics):
        self.client = client
        self.index = index
        self.watermarks = watermarks
        self.topics = list(topics)

    def run(self):
        """Run one pass over all hashtags. Returns a list of TopicResult."""
        started = time.time()
        results = [self.ingest_topic(topic) for topic in self.topics]
        indexed = sum(r.indexed for r in results)
        failed = sum(1 for r in results if r.error is not None)
        logger.info(f"Cycle finished in {time.time() - started:.2f}s: "
                    f"{indexed} statuses indexed, {failed}/{len(results)} hashtags failed")
        return results

    def ingest_topic(self, topic):
        since_id = self.watermarks.get(topic)
        if since_id is None:
            logger.info(f"No watermark for #{topic}, fetching full history")
        else:
            logger.debug(f"Fetching #{topic} since {since_id}")

        try:
            items = self.client.fetch_since(topic, since_id)
        except FetchError as e:
            logger.error(f"Couldn't load statuses for #{topic}: {e}")
            return self._keep_partial(topic, since_id, e)
        except Exception as e:
            logger.error(f"Unexpected error fetching #{topic}: {e}")
            logger.error(traceback.format_exc())
            return TopicResult(topic, TopicResult.FETCH_FAILED, watermark=since_id,
                               error=FetchError(topic, str(e)))

        items = self._newer_than(items, since_id)
        if not items:
            logger.debug(f"No new statuses for #{topic}")
            return TopicResult(topic, TopicResult.EMPTY, watermark=since_id)

        newest_id = max(item.id for item in items)
        documents = self._map(topic, items)

        try:
            self.index.upsert(documents)
        except IndexWriteError as e:
            logger.error(f"Error indexing #{topic}, watermark stays at {since_id}: {e}")
            return TopicResult(topic, TopicResult.INDEX_FAILED, fetched=len(items),
                               watermark=since_id, error=e)

        try:
            self.watermarks.advance(topic, newest_id)
        except PersistenceError as e:
            logger.error(f"Error saving watermark for #{topic}: {e}")
            logger.error(traceback.format_exc())
            return TopicResult(topic, TopicResult.PERSIST_FAILED, fetched=len(items),
                               indexed=len(documents), watermark=newest_id, error=e)

        logger.info(f"Indexed {len(documents)} statuses for #{topic} (newest {newest_id})")
        return TopicResult(topic, TopicResult.INDEXED, fetched=len(items),
                           indexed=len(documents), watermark=newest_id)

    def _keep_partial(self, topic, since_id, error):
        """
        Index the statuses a failed fetch did return, leaving the watermark
        where it was. The next cycle fetches the same range again and the
        upserts replace these documents.
        """
        items = self._newer_than(error.items, since_id)
        if not items:
            return TopicResult(topic, TopicResult.FETCH_FAILED, watermark=since_id, error=error)

        documents = self._map(topic, items)
        try:
            self.index.upsert(documents)
        except IndexWriteError as e:
            logger.error(f"Error indexing partial fetch of #{topic}: {e}")
            return TopicResult(topic, TopicResult.FETCH_FAILED, fetched=len(items),
                               watermark=since_id, error=error)

        logger.info(f"Indexed {len(documents)} statuses from partial fetch of #{topic}, "
                    f"watermark stays at {since_id}")
        return TopicResult(topic, TopicResult.FETCH_FAILED, fetched=len(items),
                           indexed=len(documents), watermark=since_id, error=error)

    @staticmethod
    def _newer_than(items, since_id):
        if since_id is None:
            return list(items)
        return [item for item in items if item.id > since_id]

    @staticmethod
    def _map(topic, items):
        documents = []
        for item in items:
            doc = map_item(item)
            if is_empty(doc):
                logger.debug(f"Skipping empty status {doc.id} in #{topic}")
                continue
            documents.append(doc)
        return documents
