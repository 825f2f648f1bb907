"""Download and decompression of remote datasets."""

import gzip
import logging
import zlib
from typing import Any, Optional

import httpx
import zstandard as zstd

from .exceptions import DatasetFetchError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30  # seconds; the cities dataset gets a longer one from settings

GZIP_MAGIC = b"\x1f\x8b"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"


def fetch_dataset(url: str, client: Optional[Any] = None, timeout: float = _DEFAULT_TIMEOUT) -> bytes:
    """
    Download a dataset.

    Args:
        url: Dataset URL
        client: Optional httpx.Client (or anything with a compatible ``get``)
        timeout: Request timeout in seconds

    Returns:
        Raw response body

    Raises:
        DatasetFetchError: On transport errors or a non-2xx response
    """
    logger.info(f"Downloading {url}")
    try:
        if client is not None:
            resp = client.get(url, timeout=timeout, follow_redirects=True)
        else:
            resp = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as e:
        raise DatasetFetchError(f"Failed to fetch {url}: {e}", url=url) from e

    if not 200 <= resp.status_code < 300:
        raise DatasetFetchError(
            f"Failed to fetch {url}. HTTP Status: {resp.status_code}",
            url=url,
            status_code=resp.status_code,
        )

    payload = resp.content
    logger.info(f"Downloaded {len(payload) / 1024 / 1024:.2f} MB from {url}")
    return payload


def decompress(payload: bytes) -> bytes:
    """
    Decompress a gzip or zstd payload; pass anything else through.

    Raises:
        DatasetFetchError: If a compressed payload is corrupt
    """
    if payload.startswith(GZIP_MAGIC):
        try:
            data = gzip.decompress(payload)
        except (OSError, EOFError, zlib.error) as e:
            raise DatasetFetchError(f"Failed to decompress gzip payload: {e}") from e
        logger.info(f"Decompressed {len(data) / 1024 / 1024:.2f} MB (gzip)")
        return data

    if payload.startswith(ZSTD_MAGIC):
        try:
            with zstd.ZstdDecompressor().stream_reader(payload) as reader:
                data = reader.read()
        except zstd.ZstdError as e:
            raise DatasetFetchError(f"Failed to decompress zstd payload: {e}") from e
        logger.info(f"Decompressed {len(data) / 1024 / 1024:.2f} MB (zstd)")
        return data

    return payload


def load_json_text(url: str, client: Optional[Any] = None, timeout: float = _DEFAULT_TIMEOUT) -> str:
    """Fetch, decompress and decode a dataset to text."""
    data = decompress(fetch_dataset(url, client=client, timeout=timeout))
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DatasetFetchError(f"Dataset at {url} is not valid UTF-8: {e}", url=url) from e
