"""Full-text search over the workspace.

The index is built once from a full pass over the navigation tree and
kept for the life of the process. A rebuild assembles a new snapshot and
swaps it in under a lock, so queries always see a complete index.
"""

import logging
import math
import re
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable

from exportwiki.core.models import NavNode, SearchDocument, SearchResult, WorkspaceData
from exportwiki.core.navigation import flatten_tree
from exportwiki.core.storage import PageStorage
from exportwiki.core.tables import TableReader

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"\w+")

FIELD_BOOSTS = {"title": 10.0, "content": 1.0}
PREFIX_WEIGHT = 0.375
FUZZY_WEIGHT = 0.45
FUZZINESS = 0.2

# BM25 parameters
K1 = 1.2
B = 0.7

EXCERPT_LENGTH = 150
EXCERPT_LEAD = 50
ELLIPSIS = "..."

_MARKDOWN_CLEANUP = [
    (re.compile(r"^```.*$", re.MULTILINE), ""),
    (re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$", re.MULTILINE), ""),
    (re.compile(r"^#+\s+", re.MULTILINE), ""),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"__([^_]+)__"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\s+"), " "),
]


def plain_text(markdown: str) -> str:
    """Strip markdown markup down to searchable text."""
    text = markdown
    for pattern, replacement in _MARKDOWN_CLEANUP:
        text = pattern.sub(replacement, text)
    return text.strip()


def tokenize(text: str) -> list[str]:
    return TOKEN_PATTERN.findall(text.lower())


def edit_distance(a: str, b: str, limit: int) -> int:
    """Levenshtein distance, giving up with ``limit + 1`` once it exceeds ``limit``."""
    if abs(len(a) - len(b)) > limit:
        return limit + 1
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        if min(current) > limit:
            return limit + 1
        previous = current
    return previous[-1]


def create_excerpt(content: str, query: str, max_length: int = EXCERPT_LENGTH) -> str:
    """Cut a window of ``content`` around the earliest query word."""
    lower_content = content.lower()
    positions = [
        index
        for index in (lower_content.find(word) for word in query.lower().split())
        if index != -1
    ]

    if not positions:
        excerpt = content[:max_length]
        return excerpt + ELLIPSIS if len(content) > max_length else excerpt

    best = min(positions)
    start = max(0, best - EXCERPT_LEAD)
    end = min(len(content), best + max_length - EXCERPT_LEAD)

    excerpt = content[start:end]
    if start > 0:
        excerpt = ELLIPSIS + excerpt
    if end < len(content):
        excerpt = excerpt + ELLIPSIS
    return excerpt


@dataclass
class _Snapshot:
    """An immutable, fully built index."""

    documents: list[SearchDocument]
    # field -> term -> {document position: term frequency}
    postings: dict[str, dict[str, dict[int, int]]] = field(default_factory=dict)
    lengths: dict[str, list[int]] = field(default_factory=dict)
    average_lengths: dict[str, float] = field(default_factory=dict)
    vocabulary: list[str] = field(default_factory=list)

    @classmethod
    def build(cls, documents: list[SearchDocument]) -> "_Snapshot":
        snapshot = cls(documents=documents)
        terms: set[str] = set()
        for name in FIELD_BOOSTS:
            postings: dict[str, dict[int, int]] = {}
            lengths: list[int] = []
            for position, document in enumerate(documents):
                tokens = tokenize(getattr(document, name))
                lengths.append(len(tokens))
                for term, count in Counter(tokens).items():
                    postings.setdefault(term, {})[position] = count
            snapshot.postings[name] = postings
            snapshot.lengths[name] = lengths
            snapshot.average_lengths[name] = (sum(lengths) / len(lengths)) if lengths else 0.0
            terms.update(postings)
        snapshot.vocabulary = sorted(terms)
        return snapshot

    def expand(self, query_term: str) -> dict[str, float]:
        """Indexed terms matching ``query_term`` exactly, by prefix, or fuzzily."""
        max_distance = round(FUZZINESS * len(query_term))
        matches: dict[str, float] = {}
        for term in self.vocabulary:
            if term == query_term:
                matches[term] = 1.0
            elif term.startswith(query_term):
                matches[term] = PREFIX_WEIGHT
            elif max_distance and edit_distance(query_term, term, max_distance) <= max_distance:
                matches[term] = FUZZY_WEIGHT
        return matches

    def score(self, query: str) -> list[tuple[int, float]]:
        """Rank documents matching any query term."""
        total = len(self.documents)
        scores: dict[int, float] = {}
        for query_term in dict.fromkeys(tokenize(query)):
            for term, weight in self.expand(query_term).items():
                for name, boost in FIELD_BOOSTS.items():
                    postings = self.postings[name].get(term)
                    if not postings:
                        continue
                    idf = math.log(1 + (total - len(postings) + 0.5) / (len(postings) + 0.5))
                    average = self.average_lengths[name] or 1.0
                    for position, frequency in postings.items():
                        length = self.lengths[name][position]
                        tf = frequency * (K1 + 1) / (frequency + K1 * (1 - B + B * length / average))
                        scores[position] = scores.get(position, 0.0) + boost * weight * idf * tf
        return sorted(scores.items(), key=lambda item: (-item[1], item[0]))


class SearchIndex:
    """Process-wide search index with explicit rebuild and invalidation."""

    def __init__(
        self,
        load_workspace: Callable[[], WorkspaceData],
        pages: PageStorage,
        tables: TableReader,
    ):
        self.load_workspace = load_workspace
        self.pages = pages
        self.tables = tables
        self._lock = threading.Lock()
        self._snapshot: _Snapshot | None = None

    def _extract_content(self, node: NavNode) -> str:
        if not node.file_path:
            return ""
        if node.is_csv:
            table = self.tables.read_table(node.file_path)
            if table is None:
                return ""
            return " ".join(" ".join(row.values()) for row in table.rows)
        page = self.pages.read_page(node.file_path)
        return plain_text(page.content) if page is not None else ""

    def _collect(self) -> list[SearchDocument]:
        nodes = flatten_tree(self.load_workspace().tree)
        return [
            SearchDocument(
                id=node.id,
                title=node.title,
                slug=node.slug,
                content=self._extract_content(node),
                type="table" if node.is_csv else "page",
            )
            for node in nodes
            if not node.is_external and (node.file_path or node.children)
        ]

    def _rebuild(self) -> _Snapshot:
        snapshot = _Snapshot.build(self._collect())
        with self._lock:
            self._snapshot = snapshot
        logger.info(
            "Search index built: %d documents, %d terms",
            len(snapshot.documents),
            len(snapshot.vocabulary),
        )
        return snapshot

    def build(self) -> None:
        """Rebuild the index from the current export."""
        self._rebuild()

    def invalidate(self) -> None:
        """Drop the index; the next query rebuilds it."""
        with self._lock:
            self._snapshot = None

    def _current(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = self._rebuild()
        return snapshot

    def documents(self) -> list[SearchDocument]:
        """The full document set."""
        return list(self._current().documents)

    def search(self, query: str, limit: int = 20) -> list[SearchResult]:
        """Return up to ``limit`` ranked results with excerpts."""
        snapshot = self._current()
        results = []
        for position, score in snapshot.score(query)[:limit]:
            document = snapshot.documents[position]
            results.append(
                SearchResult(
                    id=document.id,
                    title=document.title,
                    slug=document.slug,
                    excerpt=create_excerpt(document.content, query),
                    type=document.type,
                    score=score,
                )
            )
        return results
