"""
Value types passed between the timeline client, the indexer and the search interface.
"""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RawItem:
    """A status as returned by the timeline client."""
    id: int
    display_name: str
    username: str
    content: str
    url: str


@dataclass(frozen=True)
class Document:
    """The indexable projection of a RawItem.

    ``id`` is the index key. ``name`` and ``message`` are analyzed,
    ``url`` and ``content`` are stored only.
    """
    id: str
    name: str
    message: str
    url: str
    content: str = ''

    def fields(self):
        return {
            'id': self.id,
            'name': self.name,
            'message': self.message,
            'url': self.url,
            'content': self.content,
        }


@dataclass
class SearchHit:
    """One ranked result of a query."""
    id: str
    score: float
    name: str
    url: str
    message: str = ''
    content: str = ''
    highlights: dict = field(default_factory=dict)

    @property
    def snippet(self):
        """Best fragment for display: message highlight, then name, then raw text."""
        return (self.highlights.get('message')
                or self.highlights.get('name')
                or self.message[:200])

    def short_snippet(self, max_len=200):
        snippet = self.snippet
        if len(snippet) > max_len:
            snippet = snippet[:max_len - 3] + "..."
        return snippet

    def text_lines(self, rank):
        """Plain-text rendering for terminal output."""
        lines = [f"{rank}. {self.name} (Score: {self.score:.2f})", f"   URL: {self.url}"]
        snippet = self.short_snippet()
        if snippet:
            lines.append(f"   {snippet}")
        return lines

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'url': self.url,
            'score': self.score,
            'snippet': self.snippet,
            'content': self.content,
            'highlights': dict(self.highlights),
        }
