"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Object storage (S3/R2) via boto3
- video: FFmpeg transcoding

These wrappers translate between external formats and our domain models.
"""
