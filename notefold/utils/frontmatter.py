# -*- coding: utf-8 -*-
"""
YAML frontmatter helpers for markdown notes.

A note starts with a `---` line, YAML key/values, and a closing `---` line;
everything after is the body. Parsing is lenient: malformed YAML is logged and
treated as absent so a single broken note never aborts a run.

Examples:
    from notefold.utils.frontmatter import get_frontmatter, set_frontmatter

    content = set_frontmatter("Body text", {"tags": ["biology"]})
    get_frontmatter(content)  # {'tags': ['biology']}
"""
# Standard library
import logging
import re
from typing import Any, Dict, Optional, Tuple

# Third-party
import yaml

logger = logging.getLogger(__name__)

_LEADING_BLOCK = re.compile(r'^---[\s\S]*?---')


def _split(content: str) -> Tuple[Optional[str], str]:
    """Return (yaml_text or None, body)."""
    lines = content.split('\n')
    if not lines or lines[0].strip() != '---':
        return None, content

    for end in range(1, len(lines)):
        if lines[end].strip() == '---':
            return '\n'.join(lines[1:end]), '\n'.join(lines[end + 1:])
    return None, content


def get_frontmatter(content: str) -> Optional[Dict[str, Any]]:
    """Parse the leading YAML block; None if absent or malformed."""
    yaml_text, _ = _split(content)
    if yaml_text is None:
        return None
    try:
        parsed = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML frontmatter: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None


def body_offset(content: str) -> int:
    """Character offset where the body starts (0 without frontmatter)."""
    yaml_text, body = _split(content)
    if yaml_text is None:
        return 0
    return len(content) - len(body)


def strip_frontmatter(content: str) -> str:
    """Body without the leading frontmatter block, trimmed."""
    return _LEADING_BLOCK.sub('', content, count=1).strip()


def set_frontmatter(content: str, data: Dict[str, Any]) -> str:
    """
    Write `data` over the note's existing frontmatter keys.

    Keys already present but missing from `data` are kept.
    """
    yaml_text, body = _split(content)
    existing = {}
    if yaml_text is not None:
        try:
            existing = yaml.safe_load(yaml_text) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse existing YAML frontmatter: {e}")
            existing = {}
        if not isinstance(existing, dict):
            existing = {}

    updated = {**existing, **data}
    dumped = yaml.safe_dump(updated, sort_keys=False, allow_unicode=True, width=1000).strip()
    return f"---\n{dumped}\n---\n{body.strip()}"
