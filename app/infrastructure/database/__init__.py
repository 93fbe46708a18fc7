"""Async database infrastructure.

This module provides async database connectivity using aiosqlite.
"""
from .connection import AsyncConnectionPool, connect, init_schema

__all__ = [
    'AsyncConnectionPool',
    'connect',
    'init_schema',
]
