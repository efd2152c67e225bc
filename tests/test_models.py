from types import SimpleNamespace

import httpx
import openai
import pytest

from common.errors import OcrError, TranscriptionError
from models.ocr import TesseractOcr, _to_result
from models.stt import WhisperTranscriber


def test_tesseract_rows_become_tokens_and_lines():
    data = {
        "text": ["", "Total", "5.00", "  ", "Thanks"],
        "conf": ["-1", "96", "91", "-1", "88"],
        "left": [0, 10, 60, 0, 10],
        "top": [0, 20, 21, 0, 50],
        "width": [0, 40, 30, 0, 50],
        "height": [0, 12, 12, 0, 12],
        "block_num": [1, 1, 1, 1, 2],
        "par_num": [1, 1, 1, 1, 1],
        "line_num": [1, 1, 1, 1, 1],
    }

    result = _to_result(data)

    assert result.text == "Total 5.00\nThanks"
    assert [t.text for t in result.tokens] == ["Total", "5.00", "Thanks"]
    assert result.tokens[0].box == ((10, 20), (50, 20), (50, 32), (10, 32))


def test_tesseract_rejects_unreadable_bytes():
    with pytest.raises(OcrError):
        TesseractOcr(lang="eng", timeout_s=1).recognize(b"definitely not an image")


class _FakeTranscriptions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def create(self, file, model):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(text=outcome)


def _client(outcomes):
    transcriptions = _FakeTranscriptions(outcomes)
    return SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions)), transcriptions


def _connection_error():
    return openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com"))


def test_whisper_retries_connection_errors(tmp_path):
    audio = tmp_path / "a.wav"
    audio.write_bytes(b"RIFF")
    client, calls = _client([_connection_error(), "hello there"])

    text = WhisperTranscriber(client=client, model="whisper-1", max_attempts=2).transcribe(audio)

    assert text == "hello there"
    assert calls.calls == 2


def test_whisper_gives_up_with_transcription_error(tmp_path):
    audio = tmp_path / "a.wav"
    audio.write_bytes(b"RIFF")
    client, calls = _client([_connection_error()])

    with pytest.raises(TranscriptionError):
        WhisperTranscriber(client=client, max_attempts=1).transcribe(audio)
    assert calls.calls == 1


def test_whisper_missing_file_is_a_transcription_error(tmp_path):
    client, calls = _client([])
    with pytest.raises(TranscriptionError):
        WhisperTranscriber(client=client).transcribe(tmp_path / "missing.wav")
    assert calls.calls == 0
