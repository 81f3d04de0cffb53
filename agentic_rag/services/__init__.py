"""External model providers: embeddings and text generation."""
