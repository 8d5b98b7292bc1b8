# -*- coding: utf-8 -*-
"""
Utilities package shared across the consolidation pipeline.

Contains logging setup, dataclasses, the error hierarchy, rate limiting,
name formatting/validation and frontmatter helpers.
"""
