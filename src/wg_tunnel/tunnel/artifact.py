"""Scoped on-disk config artifact for the WireGuard helper."""

import os
import shutil
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Literal

from ..common.logging import get_logger
from .codec import serialize
from .models import TunnelConfig

logger = get_logger(__name__)

ARTIFACT_PREFIX = "wg_tunnel_"
ARTIFACT_SUFFIX = ".conf"


class ConfigArtifact:
    """Temporary config file holding serialized key material.

    The file lives alone in a private directory (0700) and is itself 0600.
    wg-quick derives the interface name from the file stem, so the file is
    named ``<interface_name>.conf``.
    """

    def __init__(
        self,
        config: TunnelConfig,
        interface_name: str,
        base_dir: Path | None = None,
    ):
        """Write the artifact.

        Args:
            config: Configuration to serialize
            interface_name: Interface name, used as the file stem
            base_dir: Directory to create the private directory in
                (system temp dir if None)

        Raises:
            OSError: If the artifact could not be written
        """
        self._directory: Path | None = Path(
            tempfile.mkdtemp(prefix=ARTIFACT_PREFIX, dir=base_dir)
        )
        self.path = self._directory / f"{interface_name}{ARTIFACT_SUFFIX}"

        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "w") as f:
                f.write(serialize(config))
        except Exception:
            self.release()
            raise

        logger.debug("Config artifact written", path=str(self.path))

    @property
    def released(self) -> bool:
        """True once the artifact has been removed."""
        return self._directory is None

    def release(self) -> None:
        """Delete the artifact and its directory. Safe to call repeatedly."""
        if self._directory is None:
            return

        directory, self._directory = self._directory, None
        try:
            shutil.rmtree(directory)
            logger.debug("Config artifact released", path=str(self.path))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(
                "Failed to remove config artifact", path=str(self.path), error=str(e)
            )

    def __enter__(self) -> "ConfigArtifact":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        """Release the artifact.

        Returns:
            False to propagate any exception
        """
        self.release()
        return False
