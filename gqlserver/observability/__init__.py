"""Observability helpers: structlog setup, request context middleware and tracing.

Loggers and tracers are built once at startup and handed to the components
that need them; nothing here keeps a module-level tracer.
"""
