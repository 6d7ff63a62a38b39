"""Chat feature package: DTOs, controller, router, service, and history store.

This package implements the medical assistant conversation flow: it keeps a
per-user message history in PostgreSQL, assembles a bounded prompt window
around each new message, and forwards it to the hosted completion endpoint.
"""
