from __future__ import annotations

import hashlib
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

import orjson
from tqdm import tqdm

from common.config import yaml_config
from common.errors import ValidationError, require_tenant
from common.logger import get_logger
from graph.store import DocumentStore, commit_documents
from ingestion.assembler import DocumentAssembler
from ingestion.audio_transcriber import AudioTranscriber
from ingestion.document_models import Document, Extraction, IngestInput, MediaType
from ingestion.image_extractor import ImageExtractor
from ingestion.loaders import TextPassthrough
from ingestion.media_tools import MediaTools, scoped_workdir
from ingestion.media_types import classify
from ingestion.video_extractor import VideoExtractor
from models.ocr import TesseractOcr
from models.stt import WhisperTranscriber

log = get_logger(__name__)


class Extractor(Protocol):
    def extract(self, source: Path, file_type: str) -> Extraction: ...


def build_extractors(ocr=None, stt=None, media=None) -> Dict[MediaType, Extractor]:
    """Default handler table: Tesseract OCR, Whisper STT and ffmpeg unless given."""
    ocr = ocr or TesseractOcr()
    stt = stt or WhisperTranscriber()
    media = media or MediaTools()
    transcriber = AudioTranscriber(stt, media=media)
    return {
        MediaType.TEXT: TextPassthrough(),
        MediaType.IMAGE: ImageExtractor(ocr),
        MediaType.AUDIO: transcriber,
        MediaType.VIDEO: VideoExtractor(transcriber, ocr, media=media),
    }


def failed_extraction(item: IngestInput, reason: str) -> Extraction:
    """Stand-in for a file whose extraction never finished."""
    media_type = classify(item.file_type)
    return Extraction(
        content=f"[{media_type.value.title()}: {item.filename}]\n"
        f"Error processing {media_type.value} content.",
        extracted_text="",
        features={
            "format": item.file_type,
            "size": round(len(item.data) / 1024),
            "error": "Processing failed",
        },
        degraded_reason=reason,
    )


class IngestionPipeline:
    """
    Ingest a batch of uploaded files for one tenant:
      - validate the request
      - dispatch each file to the extractor for its media type
      - bound every file by `file_timeout_s`
      - assemble and upsert one Document per file
      - write a manifest JSON (for audit/debug)

    A failing file never aborts the batch; it is stored as a degraded document.
    """

    def __init__(
        self,
        store: DocumentStore,
        extractors: Optional[Dict[MediaType, Extractor]] = None,
        assembler: Optional[DocumentAssembler] = None,
        max_workers: Optional[int] = None,
        file_timeout_s: Optional[float] = None,
        manifest_dir: Optional[Path] = None,
    ):
        extractors = extractors if extractors is not None else build_extractors()
        missing = [m.value for m in MediaType if m not in extractors]
        if missing:
            raise ValueError(f"No extractor registered for: {', '.join(missing)}")

        cfg = yaml_config.ingestion
        self.store = store
        self.extractors = extractors
        self.assembler = assembler or DocumentAssembler()
        self.max_workers = max_workers or cfg.max_workers
        self.file_timeout_s = file_timeout_s if file_timeout_s is not None else cfg.file_timeout_s
        if manifest_dir is None and yaml_config.app.write_manifest:
            manifest_dir = yaml_config.app.cache_dir
        self.manifest_dir = manifest_dir

    def _extract(self, item: IngestInput) -> Extraction:
        file_type = item.file_type
        extractor = self.extractors[classify(file_type)]
        with scoped_workdir("mediarag_upload_") as work:
            source = work / Path(item.filename).name
            source.write_bytes(item.data)
            return extractor.extract(source, file_type)

    def process(self, item: IngestInput, tenant_id: str) -> Document:
        """Extract and assemble one file under the per-file deadline."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ingest")
        future = executor.submit(self._extract, item)
        try:
            extraction = future.result(timeout=self.file_timeout_s)
        except FutureTimeout:
            future.cancel()
            log.warning(
                "Processing %s exceeded %ss, storing degraded document",
                item.filename,
                self.file_timeout_s,
            )
            extraction = failed_extraction(item, "timeout")
        except Exception as e:
            log.error("Failed to process %s: %s", item.filename, e, exc_info=True)
            extraction = failed_extraction(item, f"processing failed: {e}")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if extraction.degraded:
            log.warning("Degraded document %s: %s", item.filename, extraction.degraded_reason)
        return self.assembler.assemble(item, extraction, tenant_id)

    def ingest(self, items: Sequence[IngestInput], tenant_id: str) -> List[Document]:
        tenant_id = require_tenant(tenant_id)
        items = list(items)
        if not items:
            raise ValidationError("No files provided")
        for item in items:
            if not item.filename or not item.filename.strip():
                raise ValidationError("Every file needs a filename")

        log.info("Ingesting %d files for tenant '%s'", len(items), tenant_id)
        docs: List[Document] = []
        if self.max_workers <= 1:
            for item in tqdm(items, desc="Processing files"):
                docs.append(self._commit(self.process(item, tenant_id)))
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = [pool.submit(self.process, item, tenant_id) for item in items]
                for f in tqdm(futures, desc="Processing files"):
                    docs.append(self._commit(f.result()))

        degraded = sum(1 for d in docs if d.degraded_reason)
        log.info(
            "Ingest complete: %d documents stored for tenant '%s' (%d degraded)",
            len(docs),
            tenant_id,
            degraded,
        )
        if self.manifest_dir is not None:
            self.write_manifest(docs, tenant_id)
        return docs

    def _commit(self, doc: Document) -> Document:
        commit_documents(self.store, [doc])
        return doc

    def write_manifest(self, docs: Iterable[Document], tenant_id: str) -> Path:
        manifest = [
            {
                "id": d.id,
                "filename": d.filename,
                "media_type": d.media_type.value,
                "size_kb": d.file_size,
                "sha1": hashlib.sha1(d.content.encode("utf-8")).hexdigest(),
                "degraded": d.degraded_reason,
            }
            for d in docs
        ]
        out = Path(self.manifest_dir) / f"manifest_{tenant_id}.json"
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(orjson.dumps(manifest, option=orjson.OPT_INDENT_2))
        log.info("Wrote manifest to %s", out)
        return out


def ingest_paths(
    pipeline: IngestionPipeline, paths: Iterable[Path], tenant_id: str
) -> List[Document]:
    """Read files from disk and ingest them as one batch."""
    items = [IngestInput(filename=p.name, data=Path(p).read_bytes()) for p in map(Path, paths)]
    return pipeline.ingest(items, tenant_id)
