import time

from common.config import AudioConfig
from ingestion.audio_transcriber import (
    CHUNK_FAILED,
    TRANSCRIPTION_FAILED,
    AudioTranscriber,
    ordered_map,
    plan_chunks,
)

from conftest import DummyMedia, DummyStt

BIG = 30 * 1024 * 1024


def test_plan_chunks_covers_duration():
    chunks = plan_chunks(650, 300)
    assert [(c.index, c.start, c.duration) for c in chunks] == [
        (0, 0.0, 300.0),
        (1, 300.0, 300.0),
        (2, 600.0, 50.0),
    ]
    assert len(plan_chunks(600, 300)) == 2
    assert len(plan_chunks(601, 300)) == 3
    assert plan_chunks(0, 300) == []


def test_ordered_map_keeps_input_order_with_workers():
    def slow_first(i):
        time.sleep(0.05 * (5 - i))
        return i

    assert ordered_map(slow_first, list(range(5)), workers=5) == [0, 1, 2, 3, 4]


def test_small_file_is_one_call(tmp_path):
    src = tmp_path / "talk.mp3"
    src.write_bytes(b"ID3")
    stt = DummyStt()

    out = AudioTranscriber(stt, media=DummyMedia(), cfg=AudioConfig()).extract(src, "mp3")

    assert stt.calls == ["talk"]
    assert out.content == "[Audio: talk.mp3]\nTranscription: said in talk"
    assert out.extracted_text == "said in talk"
    assert out.features["chunk_count"] == 1
    assert not out.degraded


def test_large_file_is_chunked_and_failed_chunk_keeps_its_slot(tmp_path):
    src = tmp_path / "lecture.mp3"
    src.write_bytes(b"ID3")
    media = DummyMedia(duration=650)
    stt = DummyStt(fail=("chunk_0001",))

    transcript = AudioTranscriber(stt, media=media, cfg=AudioConfig()).transcribe(src, size=BIG)

    assert transcript.text == f"said in chunk_0000\n{CHUNK_FAILED}\nsaid in chunk_0002"
    assert transcript.chunk_count == 3
    assert transcript.failed_chunks == 1
    assert transcript.degraded_reason == "1 of 3 chunks failed"
    assert media.cuts == [(0.0, 300.0), (300.0, 300.0), (600.0, 50.0)]


def test_chunk_workers_do_not_change_order(tmp_path):
    src = tmp_path / "lecture.mp3"
    src.write_bytes(b"ID3")
    cfg = AudioConfig(chunk_workers=4)

    transcript = AudioTranscriber(DummyStt(), media=DummyMedia(duration=1500), cfg=cfg).transcribe(
        src, size=BIG
    )

    assert transcript.text.splitlines() == [f"said in chunk_{i:04d}" for i in range(5)]


def test_failed_cut_marks_only_that_chunk(tmp_path):
    src = tmp_path / "lecture.mp3"
    src.write_bytes(b"ID3")
    media = DummyMedia(duration=400, fail_on=("cut",))

    transcript = AudioTranscriber(DummyStt(), media=media, cfg=AudioConfig()).transcribe(src, size=BIG)

    assert transcript.text == f"{CHUNK_FAILED}\n{CHUNK_FAILED}"
    assert transcript.failed_chunks == 2


def test_split_failure_degrades_whole_audio(tmp_path):
    src = tmp_path / "lecture.mp3"
    src.write_bytes(b"ID3")
    media = DummyMedia(fail_on=("to_wav",))

    transcript = AudioTranscriber(DummyStt(), media=media, cfg=AudioConfig()).transcribe(src, size=BIG)

    assert transcript.text == TRANSCRIPTION_FAILED
    assert transcript.degraded_reason == "to_wav failed"


def test_single_call_failure_degrades(tmp_path):
    src = tmp_path / "talk.mp3"
    src.write_bytes(b"ID3")

    out = AudioTranscriber(DummyStt(fail=("talk",)), media=DummyMedia(), cfg=AudioConfig()).extract(
        src, "mp3"
    )

    assert out.extracted_text == TRANSCRIPTION_FAILED
    assert out.degraded
    assert "stt:" in out.degraded_reason
