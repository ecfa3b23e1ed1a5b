"""
Tests for config loading and utilities.
"""
import json
import os
import shutil
import tempfile
import unittest

from tootsearch.common.config import (
    DEFAULTS, load_config, normalize_hashtags, save_config,
)
from tootsearch.common.errors import ConfigError
from tootsearch.common.utils import extract_text_from_html, parse_status_id, split_address


class TestConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp, 'config.json')

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def write(self, data):
        with open(self.path, 'w') as f:
            json.dump(data, f)

    def test_defaults_fill_missing_keys(self):
        self.write({'instance': 'toot.example', 'hashtags': ['#python', 'rust']})
        config = load_config(self.path)
        self.assertEqual(config['instance'], 'toot.example')
        self.assertEqual(config['hashtags'], ['python', 'rust'])
        self.assertEqual(config['scan_interval'], DEFAULTS['scan_interval'])
        self.assertEqual(config['index_dir'], DEFAULTS['index_dir'])

    def test_unknown_keys_are_ignored(self):
        self.write({'instance': 'toot.example', 'whatever': 1})
        self.assertNotIn('whatever', load_config(self.path))

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_config(os.path.join(self.tmp, 'absent.json'))

    def test_not_an_object(self):
        self.write(['python'])
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_bad_interval(self):
        self.write({'scan_interval': 0})
        with self.assertRaises(ConfigError):
            load_config(self.path)
        self.write({'scan_interval': 'soon'})
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_hashtags_and_scopes_must_be_lists(self):
        self.write({'hashtags': 'python'})
        with self.assertRaises(ConfigError):
            load_config(self.path)
        self.write({'hashtags': ['python'], 'scopes': 'read'})
        with self.assertRaises(ConfigError):
            load_config(self.path)
        self.write({'hashtags': ['python'], 'scopes': ['read']})
        config = load_config(self.path)
        self.assertEqual(config['hashtags'], ['python'])
        self.assertEqual(config['scopes'], ['read'])

    def test_save_round_trip(self):
        self.write({'instance': 'toot.example'})
        config = load_config(self.path)
        config['client_id'] = 'abc'
        save_config(config, self.path)
        self.assertEqual(load_config(self.path)['client_id'], 'abc')

    def test_normalize_hashtags(self):
        self.assertEqual(normalize_hashtags(['#a', 'a', ' b ', '', '#', None]), ['a', 'b'])
        self.assertEqual(normalize_hashtags(None), [])


class TestUtils(unittest.TestCase):
    def test_extract_text(self):
        self.assertEqual(extract_text_from_html('<p>a <b>b</b></p><p>c</p>'), 'a b\nc')
        self.assertEqual(extract_text_from_html(''), '')
        self.assertEqual(extract_text_from_html(None), '')

    def test_parse_status_id(self):
        self.assertEqual(parse_status_id('109'), 109)
        self.assertEqual(parse_status_id(7), 7)
        self.assertIsNone(parse_status_id('x'))
        self.assertIsNone(parse_status_id(None))

    def test_split_address(self):
        self.assertEqual(split_address('127.0.0.1:8080'), ('127.0.0.1', 8080))
        self.assertEqual(split_address(':9000'), ('0.0.0.0', 9000))
        self.assertEqual(split_address('localhost'), ('localhost', 8080))


if __name__ == '__main__':
    unittest.main()
