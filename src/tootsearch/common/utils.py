"""
Utility functions for the hashtag search bot.
"""
import logging
import re

from bs4 import BeautifulSoup

logger = logging.getLogger("utils")


def extract_text_from_html(html_content):
    """Extract plain text from a status body."""
    if not html_content:
        return ''

    try:
        soup = BeautifulSoup(html_content, 'html.parser')

        # Paragraph and line breaks become whitespace, not glued words
        for br in soup.find_all('br'):
            br.replace_with('\n')
        for p in soup.find_all('p'):
            p.append('\n')

        text = soup.get_text()
        lines = (line.strip() for line in text.splitlines())
        return '\n'.join(line for line in lines if line)
    except Exception as e:
        logger.error(f"Error extracting text from HTML: {e}")
        # Fall back to a crude tag strip
        text = re.sub(r'<[^>]+>', ' ', html_content)
        return re.sub(r'\s+', ' ', text).strip()


def parse_status_id(value):
    """Return a status ID as int, or None if it is not numeric."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def split_address(address, default_port=8080):
    """Split 'host:port' into (host, port)."""
    host, sep, port = address.rpartition(':')
    if not sep:
        return address or '127.0.0.1', default_port
    return host or '0.0.0.0', int(port)
