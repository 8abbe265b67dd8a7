"""
Core media ingestion logic.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
Snowflake or any infrastructure concerns. Collaborators are described
by protocols so the pipeline can be exercised with in-memory doubles.
"""
