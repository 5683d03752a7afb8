"""
FastAPI service for TestGenius.
"""
