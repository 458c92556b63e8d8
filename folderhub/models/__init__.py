"""API data models for folderhub."""
