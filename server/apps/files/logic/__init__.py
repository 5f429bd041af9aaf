"""Business logic layer for files app.

This package emulates a hierarchical file system on a flat object store:
- Path normalization and path/key mapping
- Folder listing and name search
- Folder create/delete, file delete, copy and move
- Presigned upload and preview URLs, file attributes
- Advisory folder-move locks

``manager.FileManager`` is the entry point; the other modules are the
engines it composes. Nothing here depends on the HTTP layer.
"""
