"""
Queries running while an ingestion cycle writes to the same index.
"""
import os
import shutil
import tempfile
import threading
import unittest

from tootsearch.indexer.ingestion import IngestionCycle
from tootsearch.indexer.search_index import SearchIndex
from tootsearch.indexer.watermarks import WatermarkStore
from tootsearch.models import Document
from tootsearch.search.query import QueryProcessor
from tests.fakes import FakeTimelineClient, make_item

DOC_IDS = [str(i) for i in range(1, 11)]


def versioned(doc_id, version):
    # name and message carry the same version so a torn read is detectable
    return Document(id=doc_id, name=f"v{version} / alice",
                    message=f"v{version} shared fox text", url=f"https://toot.example/{doc_id}")


class TestConcurrentIngestionAndQueries(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.index = SearchIndex.open(os.path.join(self.tmp, 'index'))
        self.index.upsert(versioned(doc_id, 0) for doc_id in DOC_IDS)
        self.processor = QueryProcessor(self.index, max_results=50)

    def tearDown(self):
        self.index.close()
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_readers_never_see_partial_documents(self):
        errors = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                try:
                    for hit in self.processor.search("fox"):
                        name_version = hit.name.split(' ')[0]
                        message_version = hit.message.split(' ')[0]
                        if name_version != message_version:
                            errors.append(f"torn document {hit.id}: {hit.name!r} / {hit.message!r}")
                except Exception as e:
                    errors.append(repr(e))

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        try:
            for version in range(1, 16):
                self.index.upsert(versioned(doc_id, version) for doc_id in DOC_IDS)
        finally:
            done.set()
            for thread in readers:
                thread.join(10)

        self.assertEqual(errors, [])
        self.assertFalse(any(thread.is_alive() for thread in readers))
        self.assertEqual(self.index.doc_count(), len(DOC_IDS))
        hits = list(self.processor.search("fox"))
        self.assertTrue(all(hit.name.startswith('v15 ') for hit in hits))

    def test_ingestion_cycle_alongside_queries(self):
        client = FakeTimelineClient({
            'python': [make_item(i, f"<p>fox number {i}</p>") for i in range(100, 140)],
        })
        cycle = IngestionCycle(client, self.index,
                               WatermarkStore(os.path.join(self.tmp, 'marks.json')), ['python'])
        counts = []
        errors = []

        def query_loop():
            for _ in range(20):
                try:
                    counts.append(len(list(self.processor.search("fox"))))
                except Exception as e:
                    errors.append(repr(e))

        threads = [threading.Thread(target=query_loop) for _ in range(3)]
        for thread in threads:
            thread.start()
        cycle.run()
        for thread in threads:
            thread.join(10)

        self.assertEqual(errors, [])
        # Either before (10) or after (50) the single batch commit
        self.assertTrue(set(counts) <= {10, 50})
        self.assertEqual(len(list(self.processor.search("fox"))), 50)


if __name__ == '__main__':
    unittest.main()
