# -*- coding: utf-8 -*-
"""
Module: consolidation_config.py
Package: config
Purpose: Configuration for chunking, merge resolution, model services and folders

Loads secrets from .env, defines application tunables here. Every component
reads its defaults from the *_CONFIG blocks below and accepts explicit
overrides through its constructor (the CLI passes flags straight through).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ============================================================================
# API KEYS / PATHS (from .env)
# ============================================================================

TOGETHER_API_KEY = os.getenv('TOGETHER_API_KEY')

BASE_DIR = Path(__file__).parent.parent  # Project root
DATA_PATH = Path(os.getenv('DATA_PATH', 'data/'))

if not DATA_PATH.is_absolute():
    DATA_PATH = BASE_DIR / DATA_PATH

LOGS_PATH = DATA_PATH / "logs"


# ============================================================================
# CONTENT STORE FOLDERS (relative to the store root)
# ============================================================================

FOLDER_CONFIG = {
    'input_folder': 'raw_notes',
    'output_folder': 'summarized_notes',
    'index_dir': '.notefold_index',
    'state_file_name': '.notefold_state.json',
    'note_extension': '.md',
}

# Frontmatter key set on a source document once it has been consolidated
PROCESSED_FLAG = 'notefold'


# ============================================================================
# CHUNKING
# ============================================================================

CHUNKING_CONFIG = {
    # Whitespace-delimited word counts
    'min_chunk_size': 200,
    'max_chunk_size': 400,

    # nltk resources
    'sentence_tokenizer': 'punkt_tab',
    'stopwords_language': 'english',
}


# ============================================================================
# MERGE RESOLUTION
# ============================================================================

SIMILARITY_CONFIG = {
    'topic_similarity_threshold': 0.8,
    'category_similarity_threshold': 0.6,
    'question_similarity_threshold': 0.9,

    # Neighbours fetched per lookup before threshold filtering
    'similar_items_count': 3,

    # Float tolerance on the threshold comparison
    'epsilon': 1e-8,
}

INDEX_NAMES = {
    'questions': 'questions',
    'topics': 'topics',
    'categories': 'categories',
}


# ============================================================================
# LANGUAGE MODEL (Together.ai)
# ============================================================================

LLM_CONFIG = {
    'model_name': 'mistralai/Mistral-7B-Instruct-v0.3',

    'summary_max_tokens': 200,
    'question_max_tokens': 50,
    'topic_max_tokens': 20,

    'temperature': 0.0,
    'topic_temperature': 0.7,

    # Fixed pause before every external call, plus a sliding-window ceiling
    'delay_seconds': 0.1,
    'max_calls_per_minute': 600,

    # Returned instead of raising when the provider fails
    'fallback_summary': 'Cannot Summarized',
    'fallback_question': 'UnQuestionable',
    'fallback_topic': 'Misc',
}


# ============================================================================
# EMBEDDINGS (sentence-transformers)
# ============================================================================

EMBEDDING_CONFIG = {
    'model_name': 'BAAI/bge-m3',
    'dimension': 1024,
    'device': None,  # auto-detect
    'normalize': True,
}


# ============================================================================
# VALIDATION
# ============================================================================

VALIDATION_CONFIG = {
    'question_min_length': 3,
    'question_max_length': 200,
    'topic_min_length': 2,
}


# ============================================================================
# LOGGING
# ============================================================================

LOGGING_CONFIG = {
    'level': 'INFO',
    'log_file': None,
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
}
