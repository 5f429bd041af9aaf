"""Object storage configuration for S3-compatible backends.

The folder manager works against any S3-compatible store:
- MinIO for local development
- Cloudflare R2 or AWS S3 in production

Credentials left unset fall back to the boto3 credential chain.
"""

from server.settings.components import config

AWS_STORAGE_BUCKET_NAME = config('AWS_STORAGE_BUCKET_NAME', default='files')
AWS_ACCESS_KEY_ID = config('AWS_ACCESS_KEY_ID', default=None)
AWS_SECRET_ACCESS_KEY = config('AWS_SECRET_ACCESS_KEY', default=None)
AWS_S3_ENDPOINT_URL = config('AWS_S3_ENDPOINT_URL', default=None)
AWS_S3_REGION_NAME = config('AWS_S3_REGION_NAME', default='us-east-1')

# MinIO serves buckets on the path, not as subdomains
AWS_S3_ADDRESSING_STYLE = config('AWS_S3_ADDRESSING_STYLE', default=None)
