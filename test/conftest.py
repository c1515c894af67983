import io

import pytest
from docx import Document

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class FakeProvider:
    def __init__(self, response_text: str = "", vision_text: str = ""):
        self._response_text = response_text
        self._vision_text = vision_text
        self.calls = []

    def generate(self, *, system: str, user: str, model=None) -> str:
        self.calls.append({"system": system, "user": user})
        return self._response_text

    def describe_image(self, *, image: bytes, mime_type: str, instruction: str, model=None) -> str:
        self.calls.append({"image": image, "mime_type": mime_type, "instruction": instruction})
        return self._vision_text


@pytest.fixture
def fake_provider_factory():
    def _make(response_text: str = "", vision_text: str = ""):
        return FakeProvider(response_text, vision_text)
    return _make


def build_docx(paragraphs, table=None) -> bytes:
    doc = Document()
    for p in paragraphs:
        doc.add_paragraph(p)
    if table:
        grid = doc.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def docx_factory():
    return build_docx
