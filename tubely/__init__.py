"""
Tubely - video hosting backend with a media ingestion pipeline.

This package contains the complete application:
- core: Framework-agnostic media pipeline logic
- infrastructure: External service integrations (S3, FFmpeg, Snowflake, JWT)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
