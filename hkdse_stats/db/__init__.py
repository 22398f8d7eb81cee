"""Relational schema, SQL emitter and database access."""
