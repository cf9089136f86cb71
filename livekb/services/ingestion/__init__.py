"""Document ingestion: parsing, chunking, batched embedding, orchestration."""
