from __future__ import annotations

from pathlib import Path
from typing import Protocol

import openai
from openai import OpenAI
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from common.config import secrets, yaml_config
from common.errors import TranscriptionError
from common.logger import get_logger

log = get_logger(__name__)


class SpeechToText(Protocol):
    def transcribe(self, audio_path: Path) -> str: ...


class WhisperTranscriber:
    """
    OpenAI speech-to-text. Connection-level failures are retried a bounded
    number of times; anything else surfaces as TranscriptionError.
    """

    def __init__(
        self,
        client: OpenAI | None = None,
        model: str | None = None,
        max_attempts: int | None = None,
    ):
        cfg = yaml_config.stt
        self._client = client
        self.model = model or cfg.model_name
        self.max_attempts = max_attempts or cfg.max_attempts

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=secrets.openai_api_key,
                timeout=yaml_config.stt.timeout_s,
                max_retries=0,
            )
        return self._client

    def _call(self, audio_path: Path) -> str:
        with open(audio_path, "rb") as f:
            result = self.client.audio.transcriptions.create(
                file=(audio_path.name, f), model=self.model
            )
        return result.text

    def transcribe(self, audio_path: Path) -> str:
        retrying = Retrying(
            retry=retry_if_exception_type(openai.APIConnectionError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            reraise=True,
        )
        try:
            return retrying(self._call, audio_path)
        except openai.OpenAIError as e:
            log.warning("Transcription failed for %s: %s", audio_path.name, e)
            raise TranscriptionError(str(e)) from e
        except OSError as e:
            raise TranscriptionError(f"Cannot read {audio_path}: {e}") from e
