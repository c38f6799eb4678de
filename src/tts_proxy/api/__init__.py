"""
FastAPI REST API Layer for tts-proxy.

    - routes.py: /tts, /health, /metrics and the optional static front end
    - schemas.py: Pydantic models for JSON bodies
    - dependencies.py: FastAPI dependency injection
"""
