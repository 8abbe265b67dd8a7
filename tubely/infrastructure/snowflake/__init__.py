"""
Snowflake persistence for video records, with an in-memory mock
connection for local development.
"""
