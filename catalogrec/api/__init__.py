"""FastAPI application module for CatalogRec.

This module contains the FastAPI application, route handlers, and API
endpoints exposing activity tracking and recommendation queries.
"""
