"""
Backend package for the expense tracking API.

This package provides a FastAPI application with database and session
abstractions so the service can run against Postgres/Redis in production
and fully in memory for development and tests.
"""
