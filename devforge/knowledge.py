"""Local knowledge base lookups.

A knowledge base is a directory of notebooks: every sub-directory is a
notebook and every file inside it is a source. ``check_for_project_context``
searches notebooks by project name, then by explicit keywords, then by
keywords pulled from the project description, and answers with excerpts
from the first matching notebook's text sources.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .generators.common import keywords as extract_keywords
from .generators.common import slugify

logger = logging.getLogger("devforge.knowledge")

TEXT_SUFFIXES = {".md", ".markdown", ".txt", ".rst"}
SOURCE_TYPES = {".pdf": "pdf", ".url": "url", ".webloc": "url"}
MAX_EXCERPTS = 3
MAX_EXCERPT_CHARS = 400

SUGGESTED_SOURCES = [
    "Create a notebook directory for this project in the knowledge base",
    "Add technical specifications, API docs or design documents as sources",
]


@dataclass(slots=True)
class NotebookSource:
    name: str
    type: str
    path: Path

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {"name": self.name, "type": self.type, "path": str(self.path)}


@dataclass(slots=True)
class Notebook:
    id: str
    name: str
    path: Path
    sources: List[NotebookSource] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "sources": [source.to_dict() for source in self.sources],
        }


@dataclass(slots=True)
class KnowledgeQueryResult:
    found: bool
    enabled: bool = True
    notebook: Optional[Notebook] = None
    matched_query: Optional[str] = None
    answer: Optional[str] = None
    citations: List[str] = field(default_factory=list)
    suggested_sources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "found": self.found,
            "enabled": self.enabled,
            "notebook": self.notebook.to_dict() if self.notebook else None,
            "matched_query": self.matched_query,
            "answer": self.answer,
            "citations": list(self.citations),
            "suggested_sources": list(self.suggested_sources),
        }


class KnowledgeBase:
    """Directory-backed notebook store."""

    def __init__(self, root: Optional[Path | str] = None, enabled: bool = True):
        self.root = Path(root).expanduser() if root else None
        self.enabled = enabled

    def is_available(self) -> bool:
        return self.enabled and self.root is not None and self.root.is_dir()

    def list_notebooks(self) -> List[Notebook]:
        if not self.is_available():
            return []
        notebooks = []
        for directory in sorted(p for p in self.root.iterdir() if p.is_dir() and not p.name.startswith(".")):
            sources = [
                NotebookSource(name=path.name, type=_source_type(path), path=path)
                for path in sorted(directory.rglob("*"))
                if path.is_file() and not path.name.startswith(".")
            ]
            notebooks.append(Notebook(id=slugify(directory.name, "notebook"), name=directory.name, path=directory, sources=sources))
        return notebooks

    def search_notebooks(self, query: str) -> List[Notebook]:
        """Notebooks whose name, or one of whose source names, contains ``query``."""
        needle = slugify(query, "")
        if not needle:
            return []
        matches = []
        for notebook in self.list_notebooks():
            if needle in notebook.id or any(needle in slugify(source.name, "") for source in notebook.sources):
                matches.append(notebook)
        logger.debug(f"Knowledge search '{query}': {len(matches)} notebook(s)")
        return matches

    def query_notebook(self, notebook: Notebook, query: str) -> KnowledgeQueryResult:
        """Answer ``query`` with the best-matching paragraphs of the notebook's text sources."""
        terms = extract_keywords(query) or [query.lower()]
        scored = []
        for source in notebook.sources:
            if source.type != "text":
                continue
            try:
                text = source.path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Skipping unreadable knowledge source {source.path}: {e}")
                continue
            for paragraph in re.split(r"\n\s*\n", text):
                lowered = paragraph.lower()
                score = sum(lowered.count(term) for term in terms)
                if score:
                    scored.append((score, source.name, " ".join(paragraph.split())))

        scored.sort(key=lambda item: item[0], reverse=True)
        top = scored[:MAX_EXCERPTS]
        if top:
            answer = "\n\n".join(excerpt[:MAX_EXCERPT_CHARS] for _, _, excerpt in top)
        else:
            answer = f"Notebook '{notebook.name}' has {len(notebook.sources)} source(s) but none mention the query directly."
        citations = []
        for _, name, _ in top:
            citation = f"{notebook.name}/{name}"
            if citation not in citations:
                citations.append(citation)
        return KnowledgeQueryResult(found=True, notebook=notebook, answer=answer, citations=citations)

    def check_for_project_context(
        self,
        project_name: str,
        project_description: str,
        keywords: Optional[Sequence[str]] = None,
    ) -> KnowledgeQueryResult:
        if not self.is_available():
            return KnowledgeQueryResult(found=False, enabled=False, suggested_sources=list(SUGGESTED_SOURCES))

        queries = [project_name]
        queries.extend(k for k in (keywords or []) if k)
        queries.extend(extract_keywords(project_description, limit=5))

        for query in queries:
            notebooks = self.search_notebooks(query)
            if notebooks:
                result = self.query_notebook(notebooks[0], project_description or project_name)
                result.matched_query = query
                return result

        return KnowledgeQueryResult(found=False, suggested_sources=list(SUGGESTED_SOURCES))


def _source_type(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        return "text"
    return SOURCE_TYPES.get(suffix, "file")
