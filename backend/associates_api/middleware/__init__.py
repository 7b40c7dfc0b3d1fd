"""
Associates Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [GZip] → Route Handler

    CORS answers preflight requests before anything else runs. The request ID
    is assigned before the logging middleware reads it, so every access log
    line carries it. Authentication is not middleware: it is a per-route
    dependency (see associates_api.dependencies).
"""
