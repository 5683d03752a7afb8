"""
API tests for TestGenius FastAPI endpoints.

Tests cover:
- Health check endpoints
- Session lifecycle
- Pipeline operations through HTTP
- Error kind to status code mapping
"""
