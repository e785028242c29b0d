"""Backend utilities for the PUREPDF conversion server.

This package intentionally keeps FastAPI route handlers thin:
- settings resolved once from the environment
- upload validation + timestamped storage in uploads/
- DOCX -> HTML (mammoth) -> PDF (headless Chromium) pipeline
- streaming the PDF back and deleting both temp files afterwards

Files in uploads/ and files/ are ephemeral. Never expose their stored names
or filesystem paths in responses.
"""

__version__ = "1.0.0"
