"""Storage abstraction using fsspec for local and GCS template files."""

from pathlib import Path

import fsspec


class StorageBackend:
    """Filesystem abstraction that provides identical API for local and GCS paths.

    Uses fsspec internally.  Filesystem instances are lazily created and
    cached per protocol (``file`` for local, ``gcs`` for Cloud Storage).
    """

    def __init__(self) -> None:
        self._filesystems: dict[str, fsspec.AbstractFileSystem] = {}

    def _get_fs(self, path: str) -> tuple[fsspec.AbstractFileSystem, str]:
        """Resolve the fsspec filesystem and normalised path for *path*.

        GCS paths (``gs://...``) use the ``gcs`` protocol.  Everything else
        is treated as a local file and resolved to an absolute path.
        """
        if path.startswith("gs://"):
            protocol = "gcs"
            norm_path = path
        else:
            protocol = "file"
            norm_path = str(Path(path).resolve())

        if protocol not in self._filesystems:
            self._filesystems[protocol] = fsspec.filesystem(protocol)

        return self._filesystems[protocol], norm_path

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """Read the entire contents of *path* as text."""
        fs, norm_path = self._get_fs(path)
        return fs.cat(norm_path).decode(encoding)
