#!/usr/bin/env python3

"""
Test suite for the principal isoform pipeline.

Unit tests covering:
- Region interval algebra
- Principal isoform priority rules
- Streaming annotation resolution
- Window expansion and sequence extraction
- Configuration management and identifier classification
"""
