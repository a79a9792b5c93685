"""
Configuration for Lattice.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class DocsConfig(BaseModel):
    """Markdown document tree configuration."""

    path: str = "docs"


class SyncConfig(BaseModel):
    """Sync engine configuration."""

    checkpoint_batch_size: int = 10
    hash_index: str = "graph"  # graph, manifest
    manifest_path: str = ".lattice/manifest.json"
    extraction_min_interval: float = 0.5
    extraction_max_attempts: int = 3
    watch_debounce: float = 0.5


class LLMConfig(BaseModel):
    """LLM provider configuration (used for AI entity extraction)."""

    provider: str = "ollama"  # ollama, openai
    model: str = "llama3.1:8b"
    # Provider endpoint; Ollama falls back to localhost when unset
    base_url: str | None = None
    api_key: str | None = None
    temperature: float = 0.0
    max_tokens: int = 2000
    timeout: float = 120.0


class EmbedderConfig(BaseModel):
    """Embedder configuration."""

    provider: str = "ollama"  # ollama, openai, mock
    model: str = "nomic-embed-text"
    # Provider endpoint; Ollama falls back to localhost when unset
    base_url: str | None = None
    api_key: str | None = None
    timeout: float = 120.0
    # Optional: embedding dimension (fallback to auto-detect)
    dimension: int | None = None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class SQLiteConfig(BaseModel):
    """Embedded SQLite graph store configuration."""

    db_path: str = "data/lattice.db"


class Neo4jConfig(BaseModel):
    """Neo4j graph database configuration."""

    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: str = "password"
    database: str = "neo4j"


class Config(BaseModel):
    """Main configuration."""

    docs: DocsConfig = Field(default_factory=DocsConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sqlite: SQLiteConfig = Field(default_factory=SQLiteConfig)
    neo4j: Neo4jConfig = Field(default_factory=Neo4jConfig)

    # Graph store backend
    graph_backend: str = "sqlite"

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            LATTICE_DOCS_PATH: Root of the markdown tree
            LATTICE_SYNC_BATCH_SIZE: Documents between store checkpoints
            LATTICE_SYNC_HASH_INDEX: Hash index backend (graph, manifest)
            LATTICE_SYNC_MANIFEST_PATH: Manifest file for the manifest backend
            LATTICE_LLM_PROVIDER: LLM provider (ollama, openai)
            LATTICE_LLM_MODEL: LLM model name
            LATTICE_LLM_API_KEY: LLM API key (for OpenAI)
            LATTICE_EMBEDDER_PROVIDER: Embedder provider (ollama, openai, mock)
            LATTICE_EMBEDDER_MODEL: Embedder model name
            LATTICE_EMBEDDER_API_KEY: Embedder API key (for OpenAI)
            LATTICE_EMBEDDER_DIMENSION: Embedding dimension (optional)
            LATTICE_GRAPH_BACKEND: Graph backend (sqlite, neo4j)
            LATTICE_SQLITE_PATH: SQLite database file
            LATTICE_NEO4J_URI: Neo4j URI
            LATTICE_NEO4J_USERNAME: Neo4j username
            LATTICE_NEO4J_PASSWORD: Neo4j password
        """
        # Load .env file if provided or exists
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            # If value is empty string, return default
            if value == "":
                return default
            # Convert boolean strings
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            # Convert numeric strings
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        return cls(
            docs=DocsConfig(path=get_env("LATTICE_DOCS_PATH", "docs")),
            sync=SyncConfig(
                checkpoint_batch_size=get_env("LATTICE_SYNC_BATCH_SIZE", 10),
                hash_index=get_env("LATTICE_SYNC_HASH_INDEX", "graph"),
                manifest_path=get_env("LATTICE_SYNC_MANIFEST_PATH", ".lattice/manifest.json"),
                extraction_min_interval=get_env("LATTICE_SYNC_EXTRACTION_INTERVAL", 0.5),
                extraction_max_attempts=get_env("LATTICE_SYNC_EXTRACTION_ATTEMPTS", 3),
                watch_debounce=get_env("LATTICE_SYNC_WATCH_DEBOUNCE", 0.5),
            ),
            llm=LLMConfig(
                provider=get_env("LATTICE_LLM_PROVIDER", "ollama"),
                model=get_env("LATTICE_LLM_MODEL", "llama3.1:8b"),
                base_url=get_env("LATTICE_LLM_BASE_URL"),
                api_key=get_env("LATTICE_LLM_API_KEY"),
                temperature=get_env("LATTICE_LLM_TEMPERATURE", 0.0),
                max_tokens=get_env("LATTICE_LLM_MAX_TOKENS", 2000),
                timeout=get_env("LATTICE_LLM_TIMEOUT", 120.0),
            ),
            embedder=EmbedderConfig(
                provider=get_env("LATTICE_EMBEDDER_PROVIDER", "ollama"),
                model=get_env("LATTICE_EMBEDDER_MODEL", "nomic-embed-text"),
                base_url=get_env("LATTICE_EMBEDDER_BASE_URL"),
                api_key=get_env("LATTICE_EMBEDDER_API_KEY"),
                timeout=get_env("LATTICE_EMBEDDER_TIMEOUT", 120.0),
                dimension=get_env("LATTICE_EMBEDDER_DIMENSION"),
            ),
            graph_backend=get_env("LATTICE_GRAPH_BACKEND", "sqlite"),
            sqlite=SQLiteConfig(db_path=get_env("LATTICE_SQLITE_PATH", "data/lattice.db")),
            neo4j=Neo4jConfig(
                uri=get_env("LATTICE_NEO4J_URI", "bolt://localhost:7687"),
                username=get_env("LATTICE_NEO4J_USERNAME", "neo4j"),
                password=get_env("LATTICE_NEO4J_PASSWORD", "password"),
                database=get_env("LATTICE_NEO4J_DATABASE", "neo4j"),
            ),
            logging=LoggingConfig(
                level=get_env("LATTICE_LOG_LEVEL", "INFO"),
                log_to_file=get_env("LATTICE_LOG_TO_FILE", True),
                log_dir=get_env("LATTICE_LOG_DIR", "logs"),
                file_rotation=get_env("LATTICE_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("LATTICE_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("LATTICE_LOG_COMPRESSION", "zip"),
                serialize=get_env("LATTICE_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file)

        # Env sections that differ from defaults override YAML sections
        default = cls()
        final_dict = {**config_dict}
        for section in ("docs", "sync", "llm", "embedder", "logging", "sqlite", "neo4j"):
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        if env_config.graph_backend != default.graph_backend:
            final_dict["graph_backend"] = env_config.graph_backend

        return cls(**final_dict) if final_dict else env_config
