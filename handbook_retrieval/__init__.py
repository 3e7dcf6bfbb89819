"""
Handbook retrieval engine.

Turns plain-text documents into a searchable vector index and answers
similarity queries against one shared collection.
"""

__version__ = "0.1.0"
