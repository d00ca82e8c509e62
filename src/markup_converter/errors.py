"""Error taxonomy shared by the local, remote and template paths."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .formats import Format


class ConversionError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class LocalConversionError(ConversionError):
    """Raised by the in-process transcoder; recoverable through the remote path."""


class UnsupportedLocalConversion(LocalConversionError):
    def __init__(self, source: "Format", target: "Format") -> None:
        super().__init__(
            "UNSUPPORTED_LOCAL",
            f"Local conversion from {source.display_name} to {target.display_name} is not supported",
        )
        self.source = source
        self.target = target


class MissingTextContent(LocalConversionError):
    def __init__(self, filename: str) -> None:
        super().__init__("NO_TEXT_CONTENT", f"Document {filename} has no text content")
        self.filename = filename


class LocalTranscodeFailed(LocalConversionError):
    def __init__(self, cause: Exception) -> None:
        detail = str(cause) or type(cause).__name__
        super().__init__("LOCAL_CONVERSION_FAILED", f"Local conversion failed: {detail}")
        self.cause = cause


class RemoteError(ConversionError):
    """Base for failures reported by or on the way to the conversion server."""


class RemoteInvalidResponse(RemoteError):
    def __init__(self, detail: str | None = None) -> None:
        message = "Invalid response from conversion server"
        if detail:
            message = f"{message}: {detail}"
        super().__init__("REMOTE_INVALID_RESPONSE", message)


class RemoteServerError(RemoteError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__("REMOTE_SERVER_ERROR", f"Server error ({status_code}): {message}")
        self.status_code = status_code
        self.server_message = message


class RemoteNetworkError(RemoteError):
    def __init__(self, cause: BaseException) -> None:
        detail = str(cause) or type(cause).__name__
        super().__init__("REMOTE_NETWORK_ERROR", f"Network error: {detail}")
        self.cause = cause


class RemoteTemplateUnreadable(RemoteError):
    def __init__(self, template_id: str, cause: OSError) -> None:
        super().__init__("TEMPLATE_READ_FAILED", f"Cannot read reference template {template_id}: {cause}")
        self.template_id = template_id
        self.cause = cause


class ArtifactWriteError(ConversionError):
    def __init__(self, cause: OSError) -> None:
        super().__init__("WRITE_FAILED", f"Failed to write conversion output: {cause}")
        self.cause = cause


class TemplateError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class TemplateAccessDenied(TemplateError):
    def __init__(self, source: str) -> None:
        super().__init__("TEMPLATE_ACCESS_DENIED", f"Cannot access the selected file: {source}")


class TemplateUnsupportedFormat(TemplateError):
    def __init__(self, extension: str) -> None:
        super().__init__(
            "TEMPLATE_UNSUPPORTED_FORMAT",
            f"Unsupported template format: .{extension}. Please select a .docx, .odt, or .pptx file.",
        )
        self.extension = extension


class TemplateSaveFailed(TemplateError):
    def __init__(self, cause: BaseException) -> None:
        super().__init__("TEMPLATE_SAVE_FAILED", f"Failed to save template: {cause}")
        self.cause = cause


__all__ = [
    "ArtifactWriteError",
    "ConversionError",
    "LocalConversionError",
    "LocalTranscodeFailed",
    "MissingTextContent",
    "RemoteError",
    "RemoteInvalidResponse",
    "RemoteNetworkError",
    "RemoteServerError",
    "RemoteTemplateUnreadable",
    "TemplateAccessDenied",
    "TemplateError",
    "TemplateSaveFailed",
    "TemplateUnsupportedFormat",
    "UnsupportedLocalConversion",
]
