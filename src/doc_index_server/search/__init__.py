"""
Query engine package.

Every query mode is a linear scan over one collection's documents:
- fuzzy: Levenshtein distance and recursive matching over JSON values
- vector: vector extraction and Euclidean distance
- keyword: substring / fuzzy keyword search
- dsl: term/range filters, sort and aggregation
- knn: exhaustive nearest-neighbour search
"""
