# Middleware package init
"""
Pantry Proxy Backend — Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    Request ID runs first so the access log line and every service log line
    of the request share the same correlation ID.
"""
