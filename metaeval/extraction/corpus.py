"""Resolve document ids to files on disk."""

import logging
from pathlib import Path

from metaeval.exceptions import DocumentNotFoundError

logger = logging.getLogger(__name__)


class DocumentCorpus:
    """
    A directory of documents named ``<document_id><suffix>``.

    Example:
        >>> corpus = DocumentCorpus("PapersTestSet", suffix=".pdf")
        >>> corpus.resolve("0a1b2c")
        PosixPath('PapersTestSet/0a1b2c.pdf')
    """

    def __init__(self, directory: str | Path, suffix: str = ".pdf"):
        self.directory = Path(directory)
        self.suffix = suffix

    def path_for(self, document_id: str) -> Path:
        """
        Path a document would have, without checking that it exists.

        Raises:
            DocumentNotFoundError: If the id would resolve outside the corpus
        """
        if not document_id or "/" in document_id or "\\" in document_id or document_id in (".", ".."):
            raise DocumentNotFoundError(f"Invalid document id: {document_id!r}")
        return self.directory / f"{document_id}{self.suffix}"

    def resolve(self, document_id: str) -> Path:
        """
        Path of an existing document.

        Raises:
            DocumentNotFoundError: If the id is invalid or no such file exists
        """
        path = self.path_for(document_id)
        if not path.is_file():
            raise DocumentNotFoundError(
                f"No document for id '{document_id}' in {self.directory}"
            )
        return path

    def __repr__(self) -> str:
        return f"DocumentCorpus({str(self.directory)!r}, suffix={self.suffix!r})"
