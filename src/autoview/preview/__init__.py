"""Locating the running app to preview."""
