# -*- coding: utf-8 -*-
"""
LLM prompt templates for summary, question, topic and category derivation.

Templates use str.format placeholders; fill them through the helper functions
at the bottom so callers never have to know placeholder names.
"""

from typing import List


# ============================================================================
# SYSTEM INSTRUCTIONS
# ============================================================================

SUMMARY_SYSTEM = "You are a helpful assistant that summarize text."
QUESTION_SYSTEM = "You are a helpful assistant that questions the text."
TOPIC_SYSTEM = "You are a helpful assistant that categorizes text into concise topics."


# ============================================================================
# TEMPLATES
# ============================================================================

SUMMARY_PROMPT = """Summarize the following text into 1-2 clear and concise sentences capturing the main idea.

Text:
\"\"\"
{text}
\"\"\"

Summary:"""

QUESTION_PROMPT = """Based on the text below, generate a short, simple question (max 10 words) that someone curious about the topic might naturally ask.

Keep it clear, specific, and beginner-friendly. Avoid technical jargon.

Text:
\"\"\"
{text}
\"\"\"

Question:"""

TOPIC_PROMPT = """You are given a file excerpt. Based on its content, generate a single, concise topic or category that best represents the text. Answer only topic name nothing else.

File Name: {file_name}

Content:
\"\"\"
{context}
\"\"\"

Topic:"""

MERGE_QUESTIONS_PROMPT = """Combine the two questions below into a single clear question that addresses or relates to both topics. Keep it short and simple; if merging would produce a complex question, return a simple one instead (max 15 words).
Question 1: {first}
Question 2: {second}
Merged Question:"""

COMMON_TOPIC_PROMPT = """Given the following list of topics, suggest one unifying parent topic or category that best encompasses them all. Answer only topic name nothing else, do not answer in a sentence.

Topics:
{topics}

Parent Topic:"""


# ============================================================================
# BUILDERS
# ============================================================================

def summary_prompt(text: str) -> str:
    return SUMMARY_PROMPT.format(text=text)


def question_prompt(text: str) -> str:
    return QUESTION_PROMPT.format(text=text)


def topic_prompt(file_name: str, context: str) -> str:
    return TOPIC_PROMPT.format(file_name=file_name, context=context)


def merge_questions_prompt(first: str, second: str) -> str:
    return MERGE_QUESTIONS_PROMPT.format(first=first, second=second)


def common_topic_prompt(topics: List[str]) -> str:
    return COMMON_TOPIC_PROMPT.format(topics=", ".join(topics))
