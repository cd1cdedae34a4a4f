"""Persist final answers as markdown files.

Layout: ``<base>/<YYYY-MM-DD>/<sanitized-prompt>/<HH-MM-SS>.md``.
"""

import re
from datetime import datetime
from pathlib import Path

from .logging import get_logger

logger = get_logger(__name__)

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "is", "for", "to", "of", "in", "it", "and", "or",
        "but", "not", "on", "with", "as", "at", "by", "from", "up", "down",
        "out", "off", "over", "under", "again", "further", "then", "once",
        "here", "there", "when", "where", "why", "how", "all", "any", "both",
        "each", "few", "more", "most", "other", "some", "such", "no", "nor",
        "only", "own", "same", "so", "than", "too", "very", "s", "t", "can",
        "will", "just", "don", "should", "now",
    }
)

MAX_NAME_WORDS = 6


def sanitize_name(name: str) -> str:
    """Turn a prompt into a short directory name.

    Lower-cases, drops stop words, keeps the first six words, joins them with
    hyphens and strips anything outside ``[a-z0-9-]``.
    """
    words = [w for w in name.lower().split() if w and w not in STOP_WORDS]
    slug = "-".join(words[:MAX_NAME_WORDS])
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-") or "untitled"


def build_output_path(
    prompt: str,
    base_dir: str | Path = "output",
    now: datetime | None = None,
) -> Path:
    """Return the file path an answer for ``prompt`` would be written to."""
    now = now or datetime.now()
    return (
        Path(base_dir)
        / now.strftime("%Y-%m-%d")
        / sanitize_name(prompt)
        / f"{now.strftime('%H-%M-%S')}.md"
    )


def save_output(
    prompt: str,
    content: str,
    base_dir: str | Path = "output",
    now: datetime | None = None,
) -> Path:
    """Write ``content`` to its dated markdown file and return the path.

    Args:
        prompt: The user's original query, used for the directory name
        content: Markdown to write
        base_dir: Root output directory
        now: Timestamp override

    Returns:
        Path of the written file
    """
    path = build_output_path(prompt, base_dir=base_dir, now=now)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")

    logger.info("Output saved", path=str(path), chars=len(content))
    return path
