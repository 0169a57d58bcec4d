"""Core building blocks: tokenizer, embeddings, extraction, storage, sources."""
