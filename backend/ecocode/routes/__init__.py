# Routes package init
"""
EcoCodeAI Backend - API Routes Package
========================================

Route Inventory:
    - root.py:     GET  /                    (plain-text liveness string)
    - health.py:   GET  /health              (dependency health check)
    - auth.py:     POST /api/auth/register   (create account)
                   POST /api/auth/login      (JSON credentials → bearer token)
                   POST /api/auth/token      (OAuth2 password form → bearer token)
                   GET  /api/auth/me         (current user, bearer-protected)
    - analyze.py:  POST /api/analyze         (forward code to the analysis service)

Routes are thin: extract request data, call a service, shape the response.
"""
