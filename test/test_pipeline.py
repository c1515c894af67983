import io

import pytest
from PIL import Image

from cleanops.errors import ExtractionFailure, NoContent, UnsupportedFormat
from cleanops.models import Frequency, RawDocument
from extraction.pipeline import DocumentPipeline
from extraction.relevance_ranker import RelevanceRanker
from extraction.text_extractor import DOCX_MIME, TextExtractor
from llm.llm_client import LLMClient
from scheduling.catalog import ScheduleCatalog
from storage.memory_store import InMemoryStore

TASK_LINES = ["Clean bathroom sink weekly", "Vacuum hallway carpet (Frequency: daily)"]


def _document_paragraphs() -> list:
    paragraphs = [f"Paragraph {i} describes the history of the company." for i in range(40)]
    paragraphs.insert(12, TASK_LINES[0])
    paragraphs.insert(33, TASK_LINES[1])
    return paragraphs


def _pipeline(provider, store=None):
    store = store or InMemoryStore()
    return DocumentPipeline(ScheduleCatalog(store), llm_client=LLMClient(provider=provider)), store


def test_ranked_content_keeps_task_lines(fake_provider_factory, docx_factory):
    text = TextExtractor(LLMClient(provider=fake_provider_factory())).extract(
        docx_factory(_document_paragraphs()), DOCX_MIME
    ).text
    ranked = RelevanceRanker().rank(text)
    assert TASK_LINES[0] in ranked.text
    assert TASK_LINES[1] in ranked.text
    assert len(ranked.lines) == 30


def test_free_form_schedule_end_to_end(fake_provider_factory, docx_factory):
    provider = fake_provider_factory("Tasks:\n- Clean bathroom sink weekly\n- Vacuum hallway carpet (Frequency: daily)\n")
    pipeline, store = _pipeline(provider)

    result = pipeline.ingest(
        RawDocument(content=docx_factory(_document_paragraphs()), mime_type=DOCX_MIME, filename="rota.docx")
    )

    sent = provider.calls[0]["user"]
    assert TASK_LINES[0] in sent and TASK_LINES[1] in sent

    schedule = result.schedule
    assert result.extraction_method == "docx-text"
    assert schedule.title == "Cleaning Schedule"
    assert [t.description for t in schedule.tasks] == ["Clean bathroom sink weekly", "Vacuum hallway carpet"]
    assert [t.frequency for t in schedule.tasks] == [None, "daily"]
    assert schedule.suggested_frequency == Frequency.DAILY
    assert len(store.list_schedules()) == 1


def test_task_list_mode_with_prose_fallback(fake_provider_factory, docx_factory):
    provider = fake_provider_factory("Clean the sink\nWipe the mirrors\nMop the floor")
    pipeline, store = _pipeline(provider)

    result = pipeline.ingest(
        RawDocument(content=docx_factory(TASK_LINES), mime_type=DOCX_MIME), mode="tasks"
    )

    assert result.fallback_used is True
    assert result.chunks == 1
    assert [t.frequency for t in result.tasks] == ["daily", "daily", "daily"]
    assert len(store.list_cleaning_tasks()) == 3


def test_image_upload_uses_vision(fake_provider_factory):
    provider = fake_provider_factory(
        response_text='[{"taskDescription": "Wipe mirror", "frequency": "daily"}]',
        vision_text="- Wipe mirror (Frequency: daily)\n- Clean sink (Frequency: daily)",
    )
    pipeline, _ = _pipeline(provider)
    out = io.BytesIO()
    Image.new("RGB", (64, 64)).save(out, format="PNG")

    result = pipeline.ingest(RawDocument(content=out.getvalue(), mime_type="image/png"), mode="tasks")

    assert result.extraction_method == "vision"
    assert [t.description for t in result.tasks] == ["Wipe mirror"]


def test_failed_extraction_persists_nothing(fake_provider_factory, docx_factory):
    pipeline, store = _pipeline(fake_provider_factory("I could not find any tasks."))
    with pytest.raises(NoContent):
        pipeline.ingest(RawDocument(content=docx_factory(TASK_LINES), mime_type=DOCX_MIME))
    assert store.list_schedules() == []
    assert store.list_tasks("anything") == []


def test_empty_document(fake_provider_factory, docx_factory):
    pipeline, _ = _pipeline(fake_provider_factory("[]"))
    with pytest.raises(ExtractionFailure) as exc:
        pipeline.ingest(RawDocument(content=docx_factory(["", "   "]), mime_type=DOCX_MIME))
    assert exc.value.message == "No content could be extracted from the file"


def test_unsupported_upload(fake_provider_factory):
    provider = fake_provider_factory("[]")
    pipeline, _ = _pipeline(provider)
    with pytest.raises(UnsupportedFormat):
        pipeline.ingest(RawDocument(content=b"a,b,c", mime_type="text/csv"))
    assert provider.calls == []
