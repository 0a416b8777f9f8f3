"""Upload validation."""
from citeqa.exceptions import FileSizeExceededError, FileTypeNotSupportedError

SUPPORTED_EXTENSIONS = [".pdf"]
PDF_MAGIC = b"%PDF-"


def validate_file_type(filename: str, content: bytes = b"") -> str:
    """Check the extension (and, when given, the header bytes) of an upload."""
    if not filename:
        raise FileTypeNotSupportedError("File name is required.")

    file_extension = filename.lower().rsplit(".", 1)[-1] if "." in filename else ""
    full_extension = f".{file_extension}"

    if full_extension not in SUPPORTED_EXTENSIONS:
        raise FileTypeNotSupportedError(
            f"Unsupported file type. Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    if content and not content.startswith(PDF_MAGIC):
        raise FileTypeNotSupportedError("File is not a valid PDF. PDF files must start with '%PDF-'.")

    return full_extension


def validate_file_size(file_size_bytes: int, max_size_mb: float) -> None:
    file_size_mb = file_size_bytes / (1024 * 1024)
    if file_size_mb > max_size_mb:
        raise FileSizeExceededError(
            f"File size ({file_size_mb:.2f} MB) exceeds maximum allowed size ({max_size_mb} MB)."
        )
