"""Headless browser page fetching service.

Loads a URL in an isolated Chromium context, blocks ad and (optionally)
media traffic, and returns the rendered document with response metadata.
"""
