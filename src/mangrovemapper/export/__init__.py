"""Export submission and download helpers for mangrovemapper."""

from .download import DownloadError, DownloadResult, calculate_sha256, download_geotiff
from .manager import ExportManager, ExportSubmissionError, sanitize_description
from .manifest import manifest_to_dict, write_manifest

__all__ = [
    "DownloadError",
    "DownloadResult",
    "ExportManager",
    "ExportSubmissionError",
    "calculate_sha256",
    "download_geotiff",
    "manifest_to_dict",
    "sanitize_description",
    "write_manifest",
]
