# Services package init
"""
EcoCodeAI Backend - Services Layer
====================================

What:  Business logic between routes (HTTP) and the database.

Service Inventory:
    - AuthService:            bcrypt hashing and JWT access tokens
    - UserService:            registration, login, lookup
    - AnalysisService (ABC):  contract for external code-analysis providers
    - GeminiAnalysisService:  Google Gemini provider
    - HttpAnalysisService:    generic JSON-over-HTTP provider
    - CircuitBreaker:         failure isolation for analysis providers

Analysis providers are injected into routes with FastAPI's Depends()
(see analysis_provider.get_analysis_service).
"""
