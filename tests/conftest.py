"""Shared fixtures: manuscripts built with python-docx at test time."""

import base64
from io import BytesIO

import pytest
from docx import Document
from docx.enum.style import WD_STYLE_TYPE

# 1x1 transparent PNG
PNG_1X1 = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

SCENARIO_HTML = (
    "<h1>Study of X</h1><h2>Sub</h2>"
    "<p>Abstract: This is a test. It has two sentences.</p>"
    "<h3>Introduction</h3><p>Hello world.</p>"
)


def build_docx(path, paragraphs, images=0):
    """paragraphs: [(style name, text)]; custom styles are created on demand."""
    doc = Document()
    for style, text in paragraphs:
        if style not in doc.styles:
            doc.styles.add_style(style, WD_STYLE_TYPE.PARAGRAPH)
        doc.add_paragraph(text, style=style)
    for _ in range(images):
        doc.add_picture(BytesIO(PNG_1X1))
    doc.save(str(path))
    return path


MANUSCRIPT = [
    ("Título 1", "Study of X"),
    ("Título 2", "Estudio de X"),
    ("Autores", "Ana Pérez(a), Luis Gómez(b)"),
    ("Afiliaciones", "(a) Universidad X, Ecuador (b) Universidad Y, Ecuador"),
    ("Normal", "Abstract. This is a test. It has two sentences."),
    ("Normal", "Keywords: alpha, beta"),
    ("Título 3", "Introduction"),
    ("Normal", "Hello world, see Figure 1."),
]


@pytest.fixture
def manuscript(tmp_path):
    return build_docx(tmp_path / "manuscript.docx", MANUSCRIPT, images=1)


@pytest.fixture
def empty_docx(tmp_path):
    return build_docx(tmp_path / "empty.docx", [])
