"""HTTP layer for files app.

Exposes each ``FileManager`` method as one ``POST`` JSON endpoint.
Request bodies and response payloads use camelCase keys.
"""
