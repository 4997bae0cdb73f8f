"""Module to download remote partitions into the local cache."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from tempfile import TemporaryDirectory

import requests
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

log = logging.getLogger("cache/fetch")

# Size of the chunks we read from the response body
_CHUNK_SIZE = 8192


class FetchError(RuntimeError):
    """Error emitted when we cannot materialize a partition in the cache."""


class DownloadError(FetchError):
    """Error emitted when the remote fetch does not succeed."""


class WriteError(FetchError):
    """Error emitted when we cannot write the partition to disk."""


def fetch_to_path(session: requests.Session, source_url: str, dest_path: Path) -> None:
    """
    Download source_url and atomically materialize it at dest_path.

    The destination directories are only created once the GET succeeds.
    We download inside a dot-prefixed temporary directory created in the
    destination directory, so `os.replace()` is atomic and the staging file
    is invisible to dataset discovery. Any existing file is overwritten.

    Raises:
        DownloadError: the GET fails or returns a non-2xx status.
        WriteError: we cannot create the directory or write the file.
    """
    resp = _request(session, source_url)
    try:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        with TemporaryDirectory(dir=dest_path.parent, prefix=".") as tmp_dir:
            tmp_file = Path(tmp_dir) / dest_path.name
            _stream_to_file(resp, tmp_file)
            os.replace(tmp_file, dest_path)
    except FetchError:
        raise
    except OSError as exc:
        raise WriteError(f"cannot write {dest_path}: {exc}") from exc
    finally:
        resp.close()


def _request(session: requests.Session, source_url: str) -> requests.Response:
    # Note: requests.RequestException and ConnectionError derive from OSError
    # so we must classify them before looking at local write failures.
    try:
        resp = session.get(source_url, stream=True)
        resp.raise_for_status()
    except (requests.RequestException, ConnectionError) as exc:
        raise DownloadError(f"failed to retrieve the parquet file: {exc}") from exc
    return resp


def _stream_to_file(resp: requests.Response, tmp_file: Path) -> None:
    total = resp.headers.get("Content-Length")
    total = int(total) if total is not None else None

    try:
        with (
            open(tmp_file, "wb") as filep,
            logging_redirect_tqdm(),
            tqdm(
                total=total,
                unit="B",
                unit_scale=True,
                unit_divisor=1024,
                desc=tmp_file.name,
                leave=False,
                disable=None,
            ) as pbar,
        ):
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                filep.write(chunk)
                pbar.update(len(chunk))
    except (requests.RequestException, ConnectionError) as exc:
        raise DownloadError(f"failed to retrieve the parquet file: {exc}") from exc
    except OSError as exc:
        raise WriteError(f"cannot write {tmp_file}: {exc}") from exc
