from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class AppConfig(BaseModel):
    data_dir: Path = Path("data")
    cache_dir: Path = Path("data/cache")
    write_manifest: bool = True


class ImageConfig(BaseModel):
    row_threshold: int = 10
    embed_data_uri: bool = True


class AudioConfig(BaseModel):
    size_ceiling_mb: int = 25
    chunk_seconds: int = 300
    chunk_workers: int = Field(default=1, ge=1)


class VideoConfig(BaseModel):
    frame_interval_s: int = 5
    frame_width: int = 800
    frame_workers: int = Field(default=1, ge=1)


class IngestionConfig(BaseModel):
    max_workers: int = Field(default=1, ge=1)
    file_timeout_s: float = 900.0
    ffmpeg_timeout_s: float = 300.0
    image: ImageConfig = ImageConfig()
    audio: AudioConfig = AudioConfig()
    video: VideoConfig = VideoConfig()


class OCRConfig(BaseModel):
    lang: str = "eng"
    timeout_s: float = 30.0


class STTConfig(BaseModel):
    model_name: str = "whisper-1"
    timeout_s: float = 120.0
    max_attempts: int = Field(default=2, ge=1)


class RetrievalConfig(BaseModel):
    min_token_length: int = 3
    top_k: int | None = 5


class LLMConfig(BaseModel):
    provider: str = Field(default="openai", pattern="^(openai|ollama)$")
    model_name: str = "gpt-4.1-mini"
    temperature: float = 0.7
    max_tokens: int = 1000
    timeout_s: float = 60.0


class Neo4jYAMLConfig(BaseModel):
    uri: str = "bolt://localhost:7687"


class GlobalYAMLConfig(BaseModel):
    app: AppConfig = AppConfig()
    ingestion: IngestionConfig = IngestionConfig()
    ocr: OCRConfig = OCRConfig()
    stt: STTConfig = STTConfig()
    retrieval: RetrievalConfig = RetrievalConfig()
    llm_qa: LLMConfig = LLMConfig()
    neo4j: Neo4jYAMLConfig = Neo4jYAMLConfig()


def load_yaml_config(path: Path | str | None = None) -> GlobalYAMLConfig:
    path = Path(path or os.getenv("CONFIG_PATH") or "config/config.yaml")
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    if not path.exists():
        raise FileNotFoundError(f"Config file not found at {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return GlobalYAMLConfig(**raw)


class Secrets(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    neo4j_user: str = "neo4j"
    neo4j_password: str = "neo4j"
    openai_api_key: str | None = None


yaml_config = load_yaml_config()
secrets = Secrets()
