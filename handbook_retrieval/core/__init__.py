"""
Core domain layer: exceptions, document processing and document tracking.
"""
