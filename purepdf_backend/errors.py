from __future__ import annotations

from typing import Optional


class PurePdfError(Exception):
    """Base error carrying the HTTP status and client-facing message.

    `detail` holds the underlying engine/exception text. It is appended to the
    message only when the server is configured to expose error details.
    """

    status_code = 500
    message = "Internal server error"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        super().__init__(self.render())

    def render(self, expose_details: bool = True) -> str:
        if expose_details and self.detail is not None:
            return f"{self.message}: {self.detail}"
        return self.message

    def to_payload(self, expose_details: bool = True) -> dict:
        return {"message": self.render(expose_details)}


class NoFileUploaded(PurePdfError):
    status_code = 400
    message = "No file uploaded"


class InvalidFileType(PurePdfError):
    status_code = 400
    message = "Invalid file type. Only .doc and .docx files are allowed."


class FileTooLarge(PurePdfError):
    status_code = 400
    message = "File too large. Maximum size is 50MB."

    def __init__(self, max_bytes: Optional[int] = None) -> None:
        self.max_bytes = max_bytes
        super().__init__()

    def render(self, expose_details: bool = True) -> str:
        # Keep the historical 50MB wording unless the limit was reconfigured.
        if self.max_bytes and self.max_bytes != 50 * 1024 * 1024:
            return f"File too large. Maximum size is {_format_size(self.max_bytes)}."
        return self.message


class ConversionFailed(PurePdfError):
    status_code = 500
    message = "Error converting docx to pdf"


class InternalFault(PurePdfError):
    status_code = 500
    message = "Internal server error"


class ServerBusy(PurePdfError):
    status_code = 503
    message = "Server is busy. Please try again later."


def unexpected_error_message(exc: BaseException, expose_details: bool = True) -> str:
    """Message for faults that escaped every other handler."""
    if expose_details:
        return f"Something went wrong: {exc}"
    return "Something went wrong"


def _format_size(num_bytes: int) -> str:
    mb = num_bytes / (1024 * 1024)
    if mb >= 1 and mb == int(mb):
        return f"{int(mb)}MB"
    if mb >= 1:
        return f"{mb:.1f}MB"
    return f"{num_bytes} bytes"
