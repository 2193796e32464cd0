"""Directory-backed attachment fetcher for the CLI."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional

from issueview.domain import AttachmentDescriptor
from issueview.errors import AttachmentFetchFailure

LOGGER = logging.getLogger(__name__)


class DirectoryFetcher:
    """
    Serve attachment bytes from a local directory.

    Looks up ``<root>/<document_id>/<name>``, then ``<root>/<name>``, then
    ``<root>/<id>``. Names are reduced to their final path component so a
    payload cannot point outside ``root``.
    """

    def __init__(
        self,
        root: Optional[Path],
        descriptors: Iterable[AttachmentDescriptor] = (),
    ) -> None:
        self.root = Path(root) if root is not None else None
        self._names: Mapping[int, str] = {d.id: d.name for d in descriptors}

    def candidates(self, document_id: str, attachment_id: int):
        if self.root is None:
            return []
        paths = []
        name = Path(self._names.get(attachment_id, "")).name
        if name:
            if document_id:
                paths.append(self.root / Path(document_id).name / name)
            paths.append(self.root / name)
        paths.append(self.root / str(attachment_id))
        return paths

    async def __call__(self, document_id: str, attachment_id: int) -> bytes:
        name = self._names.get(attachment_id)
        if self.root is None:
            raise AttachmentFetchFailure(
                attachment_id, "no attachments directory given", name=name
            )
        for path in self.candidates(document_id, attachment_id):
            if path.is_file():
                LOGGER.debug("issueview.cli.fetch id=%s path=%s", attachment_id, path)
                try:
                    return await asyncio.to_thread(path.read_bytes)
                except OSError as e:
                    raise AttachmentFetchFailure(
                        attachment_id, str(e), name=name
                    ) from e
        raise AttachmentFetchFailure(
            attachment_id, f"not found in {self.root}", name=name
        )
