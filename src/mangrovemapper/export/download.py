"""Direct GeoTIFF download of small products."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import requests

from mangrovemapper.logging import get_logger

__all__ = ["DownloadError", "DownloadResult", "calculate_sha256", "download_geotiff"]

LOGGER = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass
class DownloadResult:
    """Outcome of fetching a product."""

    path: Path
    url: str
    sha256: str
    size_bytes: int


class DownloadError(RuntimeError):
    """Raised when a product cannot be downloaded."""


def calculate_sha256(path: Path, *, chunk_size: int = CHUNK_SIZE) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def download_geotiff(
    image: Any,
    region: Any,
    destination: Path,
    *,
    scale: float = 30.0,
    force: bool = False,
    session: Optional[requests.Session] = None,
    timeout: int = 300,
) -> DownloadResult:
    """Stream a single-file GeoTIFF of ``image`` over ``region`` to ``destination``.

    An existing ``destination`` is reused unless ``force`` is set. The service
    caps synchronous downloads at a few tens of megabytes; larger products
    must go through an export task instead.
    """

    if destination.exists() and not force:
        LOGGER.info("product already present at %s", destination)
        return DownloadResult(
            path=destination,
            url="cached",
            sha256=calculate_sha256(destination),
            size_bytes=destination.stat().st_size,
        )

    url = image.getDownloadURL({"region": region, "scale": scale, "format": "GEO_TIFF", "filePerBand": False})
    LOGGER.info("downloading product", extra={"url": url, "destination": str(destination), "scale": scale})

    http = session or requests.Session()
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.parent / f"{destination.name}.part"
    try:
        with http.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            sha256, size_bytes = _write_chunks(response.iter_content(chunk_size=CHUNK_SIZE), partial)
    except requests.RequestException as exc:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Download failed for {destination.name}: {exc}") from exc

    partial.replace(destination)
    return DownloadResult(path=destination, url=url, sha256=sha256, size_bytes=size_bytes)


def _write_chunks(chunks: Iterable[bytes], path: Path) -> Tuple[str, int]:
    digest = hashlib.sha256()
    size_bytes = 0
    with path.open("wb") as handle:
        for chunk in filter(None, chunks):
            handle.write(chunk)
            digest.update(chunk)
            size_bytes += len(chunk)
    return digest.hexdigest(), size_bytes
