"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- auth: JWT bearer token validation
- snowflake: Video record persistence
- staging: Scratch-disk staging of uploads
- storage: Object storage (S3) and local thumbnail assets
- video: FFmpeg probe and fast-start remux

These wrappers translate between external formats and our domain models.
"""
