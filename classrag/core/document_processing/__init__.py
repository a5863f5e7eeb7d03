"""
Document processing pipeline for ingestion.

Extraction, hierarchical chunking, image description fusion, and
embedding for uploaded class materials. Import DocumentPipeline from
classrag.core.document_processing.entrypoint.

Dependencies: pypdf, python-docx, langchain_text_splitters, langchain_google_genai, tenacity
System role: Document ingestion pipeline
"""
