"""Catalog and video providers."""
