"""
AI summary and quiz pipeline.

transcribe -> chunk -> embed -> upsert to the vector store -> retrieve context
-> prompt the chat model -> parse its JSON answer.
"""

import json
import os
import re
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.config import Settings, settings
from app.models.video import Video, VideoEmbedding
from app.services.ai_clients import build_openai_client, build_pinecone_index
from app.services.logging_service import app_metrics, logger
from app.services.prompts import CONTEXT_SEPARATOR, SUMMARY_QUIZ_TEMPLATE
from app.services.redis_service import summary_cache
from app.services.video_service import video_path

NO_SUMMARY = "No summary produced"

# Greedy, spans newlines: first "{" to last "}"
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

# Keeps the whole-transcript query embedding under the embedding model's input limit
QUERY_EMBED_MAX_CHARS = 24000


class RAGPipelineError(Exception):
    """Base error for the summary pipeline. ``status_code`` maps it to HTTP."""

    status_code = 500


class VideoFileMissingError(RAGPipelineError):
    status_code = 400

    def __init__(self, message: str = "Video file missing on server"):
        super().__init__(message)


class EmptyTranscriptError(RAGPipelineError):
    status_code = 500

    def __init__(self, message: str = "Transcription returned empty text"):
        super().__init__(message)


# ============================================
# Pure helpers
# ============================================

def chunk_text(text: str, size: int = 800) -> List[str]:
    """Split text into fixed-size character chunks without overlap."""
    if size <= 0:
        raise ValueError("chunk size must be positive")

    return [text[start:start + size] for start in range(0, len(text), size)]


def vector_namespace(video_id: int) -> str:
    return f"video-{video_id}"


def build_upsert_batches(
    video_id: int,
    embedded: Sequence[Tuple[str, List[float]]],
    batch_size: int = 50,
) -> List[List[Dict[str, Any]]]:
    """
    Group (text, vector) pairs into upsert batches.

    Vector ids are ``<video_id>-<chunk index>`` with the index counted across
    all batches; metadata carries the video id and the chunk text.
    """
    if batch_size <= 0:
        raise ValueError("batch size must be positive")

    vectors = [
        {
            "id": f"{video_id}-{index}",
            "values": vector,
            "metadata": {"video_id": video_id, "text": text},
        }
        for index, (text, vector) in enumerate(embedded)
    ]
    return [vectors[start:start + batch_size] for start in range(0, len(vectors), batch_size)]


def _field(obj: Any, name: str) -> Any:
    """Read a field from an SDK response object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_match_texts(query_response: Any) -> List[str]:
    """Non-empty ``metadata.text`` values of a vector query's matches, in rank order."""
    matches = _field(query_response, "matches") or []
    texts = []
    for match in matches:
        metadata = _field(match, "metadata") or {}
        text = _field(metadata, "text")
        if text:
            texts.append(text)
    return texts


def join_match_texts(texts: Iterable[str]) -> str:
    return CONTEXT_SEPARATOR.join(text for text in texts if text)


def build_summary_prompt(title: str, context: str, transcript: str) -> str:
    return SUMMARY_QUIZ_TEMPLATE.format(title=title, context=context, transcript=transcript)


def parse_summary_response(raw: Optional[str]) -> Dict[str, Any]:
    """
    Turn the chat model's answer into ``{"summary", "quiz"}``.

    Tries strict JSON, then the outermost ``{...}`` span. When neither parses
    the raw text becomes the summary with an empty quiz; valid JSON that is
    not an object yields NO_SUMMARY. A missing summary or a non-list quiz is
    normalized rather than rejected.
    """
    raw = raw or ""

    try:
        parsed = json.loads(raw)
    except ValueError:
        match = _JSON_OBJECT_RE.search(raw)
        if not match:
            return {"summary": raw, "quiz": []}
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            return {"summary": raw, "quiz": []}

    if not isinstance(parsed, dict):
        return {"summary": NO_SUMMARY, "quiz": []}

    summary = parsed.get("summary")
    quiz = parsed.get("quiz")

    if summary and not isinstance(summary, str):
        summary = json.dumps(summary)

    return {
        "summary": summary or NO_SUMMARY,
        "quiz": quiz if isinstance(quiz, list) else [],
    }


# ============================================
# Pipeline
# ============================================

class SummaryPipeline:
    """
    Runs the summary pipeline for one video.

    SDK clients are created on first use so a missing credential surfaces as a
    pipeline error for the request that needs it.
    """

    def __init__(self, openai_client: Any = None, vector_index: Any = None, config: Settings = settings):
        self._openai = openai_client
        self._index = vector_index
        self._index_resolved = vector_index is not None
        self.config = config

    @property
    def openai(self) -> Any:
        if self._openai is None:
            self._openai = build_openai_client()
        return self._openai

    @property
    def index(self) -> Optional[Any]:
        if not self._index_resolved:
            self._index = build_pinecone_index()
            self._index_resolved = True
        return self._index

    # -- individual steps --

    def transcribe(self, path: str) -> str:
        with open(path, "rb") as audio:
            response = self.openai.audio.transcriptions.create(
                model=self.config.TRANSCRIPTION_MODEL,
                file=audio,
            )

        text = response if isinstance(response, str) else _field(response, "text")
        return text or ""

    def embed_text(self, text: str) -> List[float]:
        response = self.openai.embeddings.create(model=self.config.EMBEDDING_MODEL, input=text)
        return list(response.data[0].embedding)

    def embed_chunks(self, chunks: Sequence[str]) -> List[Tuple[str, List[float]]]:
        """Embed chunks one request at a time, preserving order."""
        return [(chunk, self.embed_text(chunk)) for chunk in chunks]

    def upsert(self, video_id: int, embedded: Sequence[Tuple[str, List[float]]]) -> int:
        """Write vectors in fixed-size batches. Returns the number of batches sent."""
        namespace = vector_namespace(video_id)
        batches = build_upsert_batches(video_id, embedded, self.config.UPSERT_BATCH_SIZE)
        for batch in batches:
            self.index.upsert(vectors=batch, namespace=namespace)
        return len(batches)

    def retrieve(self, video_id: int, query_vector: List[float]) -> List[str]:
        response = self.index.query(
            vector=query_vector,
            top_k=self.config.RETRIEVAL_TOP_K,
            include_metadata=True,
            namespace=vector_namespace(video_id),
        )
        return extract_match_texts(response)

    def complete(self, prompt: str) -> str:
        response = self.openai.chat.completions.create(
            model=self.config.CHAT_MODEL,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.config.CHAT_MAX_TOKENS,
            temperature=self.config.CHAT_TEMPERATURE,
        )
        return response.choices[0].message.content or ""

    def record_embedding(self, db: Session, video: Video, chunk_count: int) -> None:
        """Insert the video's vector mapping unless one already exists."""
        existing = db.query(VideoEmbedding.id).filter(VideoEmbedding.video_id == video.id).first()
        if existing is not None:
            return

        db.add(VideoEmbedding(
            video_id=video.id,
            vector_id=str(video.id),
            namespace=vector_namespace(video.id),
            chunk_count=chunk_count,
            model=self.config.EMBEDDING_MODEL,
        ))
        db.commit()

    # -- orchestration --

    def build_context(self, db: Session, video: Video, transcript: str, chunks: List[str]) -> str:
        if self.index is None:
            # No vector store: the leading chunks stand in for retrieved context
            logger.info("Vector store not configured, using leading chunks as context", video_id=video.id)
            return join_match_texts(chunks[:self.config.RETRIEVAL_TOP_K])

        embedded = self.embed_chunks(chunks)
        batches = self.upsert(video.id, embedded)
        self.record_embedding(db, video, len(embedded))

        query_vector = self.embed_text(transcript[:QUERY_EMBED_MAX_CHARS])
        texts = self.retrieve(video.id, query_vector)
        logger.info("Retrieved context", video_id=video.id, batches=batches, matches=len(texts))
        return join_match_texts(texts)

    def run(self, db: Session, video: Video) -> Dict[str, Any]:
        """
        Produce ``{"summary", "quiz"}`` for a video.

        Raises:
            VideoFileMissingError: The stored file is gone
            EmptyTranscriptError: Transcription produced no text
        """
        path = video_path(video.filename)
        if not os.path.exists(path):
            raise VideoFileMissingError()

        cache_key = f"video:{video.id}"
        use_cache = self.config.SUMMARY_CACHE_TTL_SECONDS > 0 and summary_cache.client is not None
        if use_cache:
            cached = summary_cache.get(cache_key)
            app_metrics.increment_cache(hit=cached is not None)
            if cached is not None:
                return cached

        started = time.perf_counter()

        transcript = self.transcribe(path)
        if not transcript.strip():
            raise EmptyTranscriptError()

        chunks = chunk_text(transcript, self.config.CHUNK_SIZE)
        context = self.build_context(db, video, transcript, chunks)

        raw = self.complete(build_summary_prompt(video.title, context, transcript))
        result = parse_summary_response(raw)

        logger.info(
            "Summary generated",
            video_id=video.id,
            chunks=len(chunks),
            quiz_items=len(result["quiz"]),
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        app_metrics.record_ai_pipeline(success=True, chunks=len(chunks))

        if use_cache:
            summary_cache.set(cache_key, result, ttl=self.config.SUMMARY_CACHE_TTL_SECONDS)

        return result


def get_summary_pipeline() -> SummaryPipeline:
    """FastAPI dependency; tests override it with a pipeline wired to fakes."""
    return SummaryPipeline()
