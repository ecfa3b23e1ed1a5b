"""
Client for the hashtag timeline API of a Mastodon-compatible instance.
Handles app registration, login and timeline fetches.
"""
import logging
from urllib.parse import quote

import requests

from tootsearch.common.config import HTTP_TIMEOUT, PAGE_LIMIT
from tootsearch.common.errors import FetchError, LoginError
from tootsearch.common.utils import parse_status_id
from tootsearch.models import RawItem

logger = logging.getLogger("timeline")

NO_REDIRECT = 'urn:ietf:wg:oauth:2.0:oob'


class TimelineClient:
    """
    Thin wrapper around the instance REST API.
    """
    def __init__(self, instance, access_token=None, timeout=HTTP_TIMEOUT,
                 page_limit=PAGE_LIMIT, session=None):
        if not instance:
            raise LoginError("No instance configured")
        if not instance.startswith(('http://', 'https://')):
            instance = f"https://{instance}"
        self.base_url = instance.rstrip('/')
        self.timeout = timeout
        self.page_limit = page_limit
        self.session = session or requests.Session()
        self.access_token = None
        if access_token:
            self.set_token(access_token)

    def set_token(self, access_token):
        self.access_token = access_token
        self.session.headers['Authorization'] = f"Bearer {access_token}"

    # Session handshake
    def register_app(self, app_name, website='', scopes=('read',)):
        """Register a new OAuth app. Returns (client_id, client_secret)."""
        logger.info(f"Registering app {app_name} on {self.base_url}")
        data = {
            'client_name': app_name,
            'redirect_uris': NO_REDIRECT,
            'scopes': ' '.join(scopes),
        }
        if website:
            data['website'] = website
        body = self._post('/api/v1/apps', data)
        try:
            return body['client_id'], body['client_secret']
        except (KeyError, TypeError) as e:
            raise LoginError(f"Unexpected app registration response: {body!r}") from e

    def login(self, client_id, client_secret, username, password, scopes=('read',)):
        """Log in with the password grant and keep the bearer token."""
        logger.info(f"Logging in as {username}")
        body = self._post('/oauth/token', {
            'grant_type': 'password',
            'client_id': client_id,
            'client_secret': client_secret,
            'username': username,
            'password': password,
            'scope': ' '.join(scopes),
        })
        token = body.get('access_token') if isinstance(body, dict) else None
        if not token:
            raise LoginError(f"Login response carried no access token: {body!r}")
        self.set_token(token)
        return token

    def _post(self, path, data):
        try:
            response = self.session.post(f"{self.base_url}{path}", data=data, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise LoginError(f"POST {path} failed: {e}") from e

    # Timeline
    def fetch_since(self, topic, since_id=None):
        """
        Fetch statuses tagged with topic, newest first.

        With since_id, one page of statuses strictly newer than since_id is
        returned (the page adjacent to since_id, so later calls catch up
        without gaps). Without since_id, all pages are followed; if a later
        page fails, the FetchError carries the statuses of the pages before it.
        """
        url = f"{self.base_url}/api/v1/timelines/tag/{quote(topic, safe='')}"
        params = {'limit': self.page_limit}
        if since_id is not None:
            params['min_id'] = str(since_id)

        items = []
        pages = 0
        while url:
            try:
                statuses, next_url = self._get_page(topic, url, params)
            except FetchError as e:
                if pages:
                    logger.warning(f"Fetch of #{topic} failed after {pages} pages, "
                                   f"returning {len(items)} statuses fetched so far")
                    raise FetchError(topic, f"page {pages + 1}: {e.message}",
                                     items=self._newest_first(items)) from e
                raise
            pages += 1
            items.extend(self._to_raw_item(s) for s in statuses)
            if since_id is not None or not statuses:
                break
            # The next link already carries the query string
            url, params = next_url, None

        items = self._newest_first(items)
        logger.debug(f"Fetched {len(items)} statuses for #{topic} in {pages} pages")
        return items

    @staticmethod
    def _newest_first(items):
        items = [item for item in items if item is not None]
        items.sort(key=lambda item: item.id, reverse=True)
        return items

    def _get_page(self, topic, url, params):
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            statuses = response.json()
        except requests.RequestException as e:
            raise FetchError(topic, f"request failed: {e}") from e
        except ValueError as e:
            raise FetchError(topic, f"malformed JSON: {e}") from e

        if not isinstance(statuses, list):
            raise FetchError(topic, f"expected a list of statuses, got {type(statuses).__name__}")
        next_url = response.links.get('next', {}).get('url')
        return statuses, next_url

    @staticmethod
    def _to_raw_item(status):
        status_id = parse_status_id(status.get('id')) if isinstance(status, dict) else None
        if status_id is None:
            logger.warning(f"Skipping status without a numeric id: {status!r:.200}")
            return None
        account = status.get('account') or {}
        return RawItem(
            id=status_id,
            display_name=account.get('display_name') or '',
            username=account.get('username') or account.get('acct') or '',
            content=status.get('content') or '',
            url=status.get('url') or status.get('uri') or '',
        )
