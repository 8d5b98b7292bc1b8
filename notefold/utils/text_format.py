# -*- coding: utf-8 -*-
"""
Name formatting and validation for derived questions and topics.

Questions become file names and aliases, topics become folder names and tags,
so both are normalized to path-safe text before they reach the index or the
content store. Validation failures raise ValidationError, which the engine
treats as fatal for the current chunk only. The language model's fallback
sentinels never validate, so a provider outage fails the chunk and leaves it
for the next run instead of filing it under a placeholder.

Example:
    from notefold.utils.text_format import validate_question, validate_topic

    validate_question("  what is   photosynthesis ??")  # 'what is photosynthesis?'
    validate_topic("Plant Biology / Energy")             # 'plant-biology-energy'
"""
# Standard library
import re
import unicodedata

# Foundation
from notefold.utils.errors import ValidationError

# Config
from config.consolidation_config import LLM_CONFIG, VALIDATION_CONFIG

_UNSAFE_PATH_CHARS = re.compile(r'[/\\:*?"<>|#%{}]')
_NON_SLUG_CHARS = re.compile(r'[^a-z0-9\- ]+')
_QUESTION_DISALLOWED = re.compile(r"[^\w\s'\"(),.-]")


def format_topic(topic: str) -> str:
    """Lowercase hyphenated slug: 'Plant Biology!' -> 'plant-biology'."""
    slug = unicodedata.normalize('NFKD', topic.lower())
    slug = _UNSAFE_PATH_CHARS.sub('', slug)
    slug = _NON_SLUG_CHARS.sub('', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-').strip()


def format_question(question: str) -> str:
    """Collapse whitespace, strip odd punctuation, end with exactly one '?'."""
    text = re.sub(r'\s+', ' ', question.strip())
    text = re.sub(r' *\?+$', '', text)
    text = _QUESTION_DISALLOWED.sub('', text)
    text = unicodedata.normalize('NFKD', text)
    return text + '?'


def validate_question(question: str) -> str:
    """
    Format and validate a question.

    Raises:
        ValidationError: empty/too short, longer than the configured maximum,
            or the language model's fallback question
    """
    formatted = format_question(question or '')
    if not formatted or len(formatted) < VALIDATION_CONFIG['question_min_length']:
        raise ValidationError(f"Invalid question: {question!r}")
    if formatted == format_question(LLM_CONFIG['fallback_question']):
        raise ValidationError(f"Fallback question from language model: {question!r}")
    if len(formatted) > VALIDATION_CONFIG['question_max_length']:
        raise ValidationError(f"Question too long: {question!r}", details={'length': len(formatted)})
    return formatted


def validate_topic(topic: str) -> str:
    """
    Format and validate a topic or category name.

    Raises:
        ValidationError: formatted name shorter than the configured minimum,
            or the language model's fallback topic
    """
    formatted = format_topic(topic or '')
    if not formatted or len(formatted) < VALIDATION_CONFIG['topic_min_length']:
        raise ValidationError(f"Invalid topic: {topic!r}")
    if formatted == format_topic(LLM_CONFIG['fallback_topic']):
        raise ValidationError(f"Fallback topic from language model: {topic!r}")
    return formatted
