"""Folder tree and folder sharing service."""
