from pydantic_settings import BaseSettings
import multiprocessing


class Settings(BaseSettings):
    app_name: str = "Agentic RAG API"
    environment: str = "development"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    # Chunking
    chunk_max_size: int = 500
    chunk_overlap_size: int = 50  # Capped at chunk_max_size // 4

    # Vector store
    chromadb_persist_directory: str | None = None  # Auto-detected if None
    default_collection: str = "documents"
    scroll_page_size: int = 1000

    # Retrieval tuning: single-collection chat flow
    chat_top_k: int = 4
    chat_min_score: float = 0.25
    # Retrieval tuning: /query flow
    query_default_top_k: int = 3
    query_max_top_k: int = 10
    query_default_min_score: float = 0.3
    # Retrieval tuning: fan-out across every collection (kept separate from the caller threshold)
    multi_collection_top_k: int = 10
    multi_collection_min_score: float = 0.4
    multi_collection_max_results: int = 10

    # Intent routing
    intent_match_threshold: float = 0.6

    # Input limits
    max_message_length: int = 500
    max_question_length: int = 1000
    max_upload_bytes: int = 10 * 1024 * 1024

    # Embedding provider
    embedding_backend: str = "sentence_transformers"  # sentence_transformers | ollama
    sentence_transformer_model: str = "all-MiniLM-L6-v2"
    ollama_embedding_url: str = "http://localhost:11434/api/embeddings"
    ollama_embedding_model: str = "mxbai-embed-large"
    embedding_max_workers: int = max(1, multiprocessing.cpu_count() - 1)

    # Generation provider (any OpenAI-compatible endpoint, e.g. Ollama /v1)
    llm_base_url: str = "http://localhost:11434/v1"
    llm_api_key: str = "ollama"
    llm_model: str = "llama3"
    llm_max_tokens: int = 500
    llm_temperature: float = 0.7

    # Timeouts (seconds)
    provider_timeout_seconds: float = 60.0
    request_timeout_seconds: float = 120.0

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables that aren't in the Settings class


settings = Settings()
