# Gallery Test Suite
"""
Test suite for the gallery permission and sync core.

Service and repository tests run against a temporary SQLite database and
storage root; integration tests drive the full FastAPI application.
"""
