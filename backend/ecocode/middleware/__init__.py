# Middleware package init
"""
EcoCodeAI Backend - Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request, plus the bearer
       token dependency used by protected routes.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject abusive clients before any processing
    2. Request ID: correlation ID for logs and error responses
    3. Logging: method, path, status and duration with the request ID

Authentication (auth.py) is a FastAPI dependency, applied per route.
"""
