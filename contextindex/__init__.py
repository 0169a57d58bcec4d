"""
contextindex: background indexing and context retrieval for conversational content.
"""

__version__ = "0.1.0"
