"""Manifest sources."""

import logging
from pathlib import Path
from urllib.parse import urlparse

from steward.cluster.accessors import ManifestSource
from steward.utils.errors import ClusterAccessError

logger = logging.getLogger(__name__)


class FileManifestSource(ManifestSource):
    """Reads manifests from local paths or ``file://`` URLs."""

    def read(self, location: str) -> bytes:
        parsed = urlparse(location)
        if parsed.scheme not in ("", "file"):
            raise ClusterAccessError(f"unsupported manifest location scheme: {location}")

        path = Path(parsed.netloc + parsed.path) if parsed.scheme == "file" else Path(location)
        try:
            return path.read_bytes()
        except OSError as e:
            raise ClusterAccessError(f"error reading manifest {location}: {e}") from e
