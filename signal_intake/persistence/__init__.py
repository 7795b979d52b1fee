"""Persistence layer for database operations using SQLite.

This module provides the public API for database operations including:
- Database initialization and connection management
- Repository classes for companies, records, signals, contacts, and alerts
- The async ``PersistenceGateway`` contract used by the pipeline
- Custom exceptions for error handling

Example usage:
    >>> from signal_intake.persistence import init_database, SqlPersistenceGateway
    >>>
    >>> init_database("sqlite:///./data/signal_intake.db")
    >>> gateway = SqlPersistenceGateway()
    >>> company_id = asyncio.run(gateway.find_or_create_owner("Acme AB", "acme.se", "indeed"))
"""

# Database initialization and session management
from .database import close_database, get_engine, get_session, init_database

# Async boundary
from .gateway import PersistenceGateway, SqlPersistenceGateway

# Repository classes
from .repositories import (
    AlertRepository,
    CompanyRepository,
    ContactRepository,
    RecordRepository,
    SignalRepository,
)

# Exceptions
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Gateway
    "PersistenceGateway",
    "SqlPersistenceGateway",
    # Repositories
    "CompanyRepository",
    "RecordRepository",
    "SignalRepository",
    "ContactRepository",
    "AlertRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
