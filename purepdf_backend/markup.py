from __future__ import annotations

import logging
from pathlib import Path

import mammoth


logger = logging.getLogger(__name__)

WATERMARK_TEXT = "Converted by PUREPDF - By Abhi Poddar"

DOCUMENT_CSS = """
    body {
        font-family: 'Times New Roman', serif;
        font-size: 12pt;
        line-height: 1.6;
        margin: 40px;
        color: #333;
    }
    h1, h2, h3, h4, h5, h6 {
        color: #2c3e50;
        margin-bottom: 15px;
    }
    p {
        margin-bottom: 12px;
        text-align: justify;
    }
    table {
        border-collapse: collapse;
        width: 100%;
        margin: 20px 0;
    }
    th, td {
        border: 1px solid #ddd;
        padding: 8px;
        text-align: left;
    }
    th {
        background-color: #f2f2f2;
    }
    ul, ol {
        margin: 12px 0;
        padding-left: 30px;
    }
    li {
        margin-bottom: 5px;
    }
    .watermark {
        position: fixed;
        bottom: 20px;
        right: 20px;
        font-size: 10pt;
        color: #888;
        opacity: 0.7;
    }
"""

_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <style>{css}</style>
</head>
<body>
{content}
    <div class="watermark">{watermark}</div>
</body>
</html>
"""


def extract_markup(path: Path) -> str:
    """Convert a Word document to HTML with mammoth.

    Blocking; callers on the event loop should run it in a thread. Mammoth's
    warnings (unsupported styles, dropped images, ...) are logged, not raised.
    """
    with Path(path).open("rb") as docx_file:
        result = mammoth.convert_to_html(docx_file)
    for message in result.messages:
        logger.warning("mammoth %s: %s", getattr(message, "type", "message"), getattr(message, "message", message))
    return result.value


def build_document(content_html: str) -> str:
    """Wrap extracted HTML in the fixed print stylesheet and watermark caption."""
    return _TEMPLATE.format(css=DOCUMENT_CSS, content=content_html or "", watermark=WATERMARK_TEXT)
