"""
Boundary layer: PostgreSQL (documents, chunk hierarchy, pgvector and
tsvector search) and S3 (raw uploaded files).
"""
