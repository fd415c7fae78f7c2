"""
Database schema definition for the score cache.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, Table, Text

# Using a standard naming convention for database objects
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# One row per page; a refresh overwrites the row.
score_table = Table(
    "wandascore",
    metadata,
    Column("ws_id", Integer, primary_key=True),
    Column("ws_page_id", Integer, nullable=False, unique=True),
    Column("ws_overall_score", Integer, nullable=False, index=True),
    Column("ws_score_data", Text, nullable=False, comment="JSON-encoded ScoreReport"),
    Column("ws_timestamp", Text, nullable=False, comment="ISO 8601 UTC time of the last write"),
)
