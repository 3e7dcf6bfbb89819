"""
Application layer: orchestration services consumed by agent tools and upload endpoints.
"""
