"""
Maps fetched statuses to index documents.
"""
from tootsearch.common.utils import extract_text_from_html
from tootsearch.models import Document


def format_name(display_name, username):
    display_name = (display_name or '').strip()
    username = (username or '').strip()
    if display_name and username:
        return f"{display_name} / {username}"
    return display_name or username


def map_item(item):
    """RawItem -> Document. Never fails; odd input passes through as text."""
    content = item.content or ''
    return Document(
        id=str(item.id),
        name=format_name(item.display_name, item.username),
        message=extract_text_from_html(content),
        url=item.url or '',
        content=content,
    )


def is_empty(document):
    return not document.message.strip() and not document.content.strip()
