"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Async facade over the boto3 S3 client (S3/MinIO/R2)
- Cached boto3 client construction
- Manager construction from Django settings

Keep infrastructure concerns separate from business logic.
"""
