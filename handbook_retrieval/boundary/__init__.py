"""
Boundary layer: adapters to external storage (vector stores, snapshot stores).
"""
