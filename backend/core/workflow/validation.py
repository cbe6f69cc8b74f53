from models.report import ReportFile
from config.settings import settings

INVALID_TYPE_MESSAGE = "Please upload a PDF or image file (JPEG, PNG)"
TOO_LARGE_MESSAGE = "File size must be less than 10MB"

class FileValidationError(ValueError):
    """Raised before any network call when a selected file is rejected."""

def validate_report_file(report_file: ReportFile) -> None:
    config = settings.upload
    if report_file.content_type not in config.allowed_content_types:
        raise FileValidationError(INVALID_TYPE_MESSAGE)
    if report_file.size > config.max_file_size_bytes:
        raise FileValidationError(TOO_LARGE_MESSAGE)
