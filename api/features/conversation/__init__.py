"""Conversation feature package: entities, repository, service, controller and router.

Conversations and their messages are stored in PostgreSQL through the
SQLAlchemy ORM. Conversations are addressed externally by a random UUID;
the integer primary key stays inside the persistence layer.
"""
