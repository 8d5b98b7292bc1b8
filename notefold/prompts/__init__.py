# -*- coding: utf-8 -*-
"""Prompt templates for the language-model service."""
