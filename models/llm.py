from __future__ import annotations

from langchain_core.language_models import BaseLanguageModel
from langchain_ollama import OllamaLLM
from langchain_openai import ChatOpenAI

from common.config import LLMConfig, secrets, yaml_config
from common.logger import get_logger

log = get_logger(__name__)


def load_llm(config_section: str = "llm_qa") -> BaseLanguageModel:
    """
    Load the answer-generation model described by a config section.
    """
    cfg: LLMConfig = getattr(yaml_config, config_section)

    if cfg.provider == "openai":
        log.info("Using OpenAI chat model %s", cfg.model_name)
        extra = {"api_key": secrets.openai_api_key} if secrets.openai_api_key else {}
        # retries belong to the caller
        return ChatOpenAI(
            model=cfg.model_name,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            timeout=cfg.timeout_s,
            max_retries=0,
            **extra,
        )
    if cfg.provider == "ollama":
        log.info("Using Ollama model %s", cfg.model_name)
        return OllamaLLM(
            model=cfg.model_name,
            temperature=cfg.temperature,
            num_predict=cfg.max_tokens,
        )
    raise ValueError(f"Unsupported provider: {cfg.provider}")
