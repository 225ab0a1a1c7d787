"""Write the generated module set to disk as one unit.

All files are first written to a staging directory created next to the
output directory (same filesystem, so ``os.replace`` is a rename) and only
moved into place once every file was staged. A failure while staging leaves
the output directory untouched; a failure while moving raises
:class:`~specbind.exceptions.EmissionError` naming the files that were
already replaced, so a half-updated output set is never reported as success.
The staging directory is removed in every case.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Sequence

from specbind.exceptions import EmissionError
from specbind.models import GeneratedModule

logger = logging.getLogger(__name__)


def write_modules(modules: Sequence[GeneratedModule], output_dir: str | Path) -> list[Path]:
    """Write *modules* into *output_dir*, creating it if needed.

    Args:
        modules: The modules to write, in order.
        output_dir: Target directory.

    Returns:
        The written file paths, in module order.

    Raises:
        EmissionError: If the staging directory cannot be created or any
            file cannot be staged or moved into place.
    """
    target = Path(output_dir)
    parent = target.absolute().parent

    try:
        parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{target.name}.", suffix=".staging", dir=parent))
    except OSError as exc:
        raise EmissionError(f"Cannot create a staging directory in {parent}: {exc}") from exc

    written: list[Path] = []
    try:
        for module in modules:
            staged = staging / module.filename
            staged.parent.mkdir(parents=True, exist_ok=True)
            staged.write_text(module.content, encoding="utf-8")
        logger.debug("Staged %d module(s) in %s", len(modules), staging)

        target.mkdir(parents=True, exist_ok=True)
        for module in modules:
            destination = target / module.filename
            destination.parent.mkdir(parents=True, exist_ok=True)
            os.replace(staging / module.filename, destination)
            written.append(destination)
    except OSError as exc:
        raise EmissionError(
            f"Failed to write generated modules to {target}: {exc}",
            [str(p) for p in written],
        ) from exc
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    return written
