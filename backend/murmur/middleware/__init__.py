# Middleware package init
"""
Murmur Backend — Middleware Package
====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation id for logs and error bodies
    2. Logging: access line with status and duration
    3. GZip / CORS: Starlette's stock middleware

    Responses travel the chain in reverse, so the access line sees the final
    status and the X-Request-ID header is set last.
"""
