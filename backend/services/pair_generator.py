"""Pair generation for each comparison mode.

Pure functions over an immutable selection and a corpus snapshot. Validation
failures raise before anything is handed to the executor, so an invalid
selection never costs a scorer call.
"""
from __future__ import annotations

from typing import Iterable, List, Sequence

from backend.core.errors import ValidationError
from backend.core.logging import LogEvent, get_logger
from backend.models.comparison import (
    AllToAllSelection,
    CorpusSnapshot,
    DocumentPair,
    FolderToFolderSelection,
    ManyToManySelection,
    OneToOneSelection,
    Selection,
)
from backend.models.documents import Document

logger = get_logger(__name__)


def generate_pairs(selection: Selection, corpus: CorpusSnapshot) -> List[DocumentPair]:
    """Enumerate the pairs to score for ``selection`` in generation order."""
    if isinstance(selection, OneToOneSelection):
        pairs = _one_to_one(selection)
    elif isinstance(selection, ManyToManySelection):
        pairs = _many_to_many(selection, corpus)
    elif isinstance(selection, FolderToFolderSelection):
        pairs = _folder_to_folder(selection, corpus)
    elif isinstance(selection, AllToAllSelection):
        pairs = _all_to_all(corpus)
    else:
        raise ValidationError("Unsupported comparison mode", field="mode", value=getattr(selection, "mode", None))

    logger.info(
        LogEvent.PAIRS_GENERATED,
        mode=selection.mode,
        corpus_size=len(corpus),
        pair_count=len(pairs),
    )
    return pairs


def _one_to_one(selection: OneToOneSelection) -> List[DocumentPair]:
    if selection.doc_a is None or selection.doc_b is None:
        missing = "doc_a" if selection.doc_a is None else "doc_b"
        raise ValidationError("Select two documents to compare", field=missing)
    if selection.doc_a.id == selection.doc_b.id:
        raise ValidationError("A document cannot be compared with itself", field="doc_b", value=selection.doc_b.id)
    return [DocumentPair(index=0, left=selection.doc_a, right=selection.doc_b)]


def _many_to_many(selection: ManyToManySelection, corpus: CorpusSnapshot) -> List[DocumentPair]:
    side_a = list(corpus.documents) if selection.select_all_a else list(selection.set_a)
    side_b = list(corpus.documents) if selection.select_all_b else list(selection.set_b)
    if not side_a or not side_b:
        raise ValidationError(
            "Select documents for both sides of the comparison",
            field="set_a" if not side_a else "set_b",
        )
    return _cross_product(_unique(side_a), _unique(side_b))


def _folder_to_folder(selection: FolderToFolderSelection, corpus: CorpusSnapshot) -> List[DocumentPair]:
    if not selection.folder_a or not selection.folder_b:
        raise ValidationError(
            "Select two folders to compare",
            field="folder_a" if not selection.folder_a else "folder_b",
        )
    side_a = corpus.documents_in_folder(selection.folder_a)
    side_b = corpus.documents_in_folder(selection.folder_b)
    for name, field_name, members in (
        (selection.folder_a, "folder_a", side_a),
        (selection.folder_b, "folder_b", side_b),
    ):
        if not members:
            raise ValidationError("Selected folders must contain documents", field=field_name, value=name)
    return _cross_product(side_a, side_b)


def _all_to_all(corpus: CorpusSnapshot) -> List[DocumentPair]:
    documents = _unique(corpus.documents)
    if len(documents) < 2:
        raise ValidationError(
            "At least two documents are required for an all-to-all comparison",
            field="corpus",
            value=len(documents),
        )
    pairs: List[DocumentPair] = []
    for i in range(len(documents)):
        for j in range(i + 1, len(documents)):
            pairs.append(DocumentPair(index=len(pairs), left=documents[i], right=documents[j]))
    return pairs


def _cross_product(side_a: Sequence[Document], side_b: Sequence[Document]) -> List[DocumentPair]:
    # Mirrored pairs are kept; the graph builder collapses them. Identity pairs are not.
    pairs: List[DocumentPair] = []
    for left in side_a:
        for right in side_b:
            if left.id == right.id:
                continue
            pairs.append(DocumentPair(index=len(pairs), left=left, right=right))
    if not pairs:
        raise ValidationError("Selection only pairs documents with themselves", field="set_b")
    return pairs


def _unique(documents: Iterable[Document]) -> List[Document]:
    """Drop repeated ids, keeping first occurrence order."""
    seen = set()
    unique: List[Document] = []
    for document in documents:
        if document.id in seen:
            continue
        seen.add(document.id)
        unique.append(document)
    return unique
