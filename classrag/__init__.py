"""
classrag: document ingestion and hybrid retrieval for class materials.
"""
