# Infrastructure layer - database, storage, events
"""
Infrastructure layer contains:
- Database connection pool and repositories
- Storage adapter for the directory tree
- Change event broker and notifier

This layer depends on the domain layer, not vice versa.
"""
