"""Embeddable document index and query engine.

Named collections of JSON documents with keyword, fuzzy, structured and
k-nearest-neighbour vector search, persisted write-through to disk.
"""

__version__ = "0.1.0"
