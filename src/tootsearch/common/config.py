"""
Configuration settings for the hashtag search bot.
"""
import json
import logging
import os

from tootsearch.common.errors import ConfigError

logger = logging.getLogger("config")

# Config file
CONFIG_FILE = 'config.json'

# App registration
APP_NAME = 'tootsearch'
APP_WEBSITE = ''
APP_SCOPES = ['read']

# Index settings
INDEX_DIR = 'toot_index'
INDEX_LANGUAGE = 'en'  # analyzer language for name and message

# Watermark settings
WATERMARK_FILE = 'hashtags_scanned.json'

# Scan settings
SCAN_INTERVAL = 60  # seconds between ingestion cycles
PAGE_LIMIT = 40     # statuses per timeline page (instance maximum)
HTTP_TIMEOUT = 30   # seconds

# Front end settings
LISTEN_ADDRESS = '127.0.0.1:8080'
MAX_RESULTS = 20

DEFAULTS = {
    'app_name': APP_NAME,
    'website': APP_WEBSITE,
    'scopes': APP_SCOPES,
    'instance': '',
    'client_id': '',
    'client_secret': '',
    'access_token': '',
    'username': '',
    'password': '',
    'hashtags': [],
    'address': LISTEN_ADDRESS,
    'scan_interval': SCAN_INTERVAL,
    'index_dir': INDEX_DIR,
    'watermark_file': WATERMARK_FILE,
    'language': INDEX_LANGUAGE,
    'page_limit': PAGE_LIMIT,
    'max_results': MAX_RESULTS,
}


def normalize_hashtags(hashtags):
    """Strip leading '#', drop blanks and duplicates, keep order."""
    seen = []
    for tag in hashtags or []:
        if tag is None:
            continue
        tag = str(tag).strip().lstrip('#').strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def load_config(path=None):
    """Load the JSON config file and fill in defaults for missing keys."""
    filename = path or CONFIG_FILE
    try:
        with open(filename, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Error loading config {filename}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {filename} must contain a JSON object")

    config = dict(DEFAULTS)
    for key in DEFAULTS:
        if key in raw and raw[key] is not None:
            config[key] = raw[key]

    for key in ('hashtags', 'scopes'):
        if not isinstance(config[key], list):
            raise ConfigError(f"{key} in {filename} must be a list, got {type(config[key]).__name__}")

    config['hashtags'] = normalize_hashtags(config['hashtags'])
    try:
        config['scan_interval'] = float(config['scan_interval'])
        config['page_limit'] = int(config['page_limit'])
        config['max_results'] = int(config['max_results'])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric setting in {filename}: {e}") from e
    if config['scan_interval'] <= 0:
        raise ConfigError("scan_interval must be positive")

    logger.info(f"Loaded config from {filename} ({len(config['hashtags'])} hashtags)")
    return config


def save_config(config, path=None):
    """Write the config back, e.g. after registering a new app."""
    filename = path or CONFIG_FILE
    tmp = f"{filename}.tmp"
    try:
        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2)
        os.replace(tmp, filename)
    except OSError as e:
        raise ConfigError(f"Error saving config {filename}: {e}") from e
    logger.debug(f"Saved config to {filename}")
