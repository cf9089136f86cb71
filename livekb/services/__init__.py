"""Service layer: ingestion, vector-index access, retrieval, session folders."""
