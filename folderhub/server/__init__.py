"""folderhub server."""
