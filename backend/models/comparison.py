"""Comparison modes, immutable selections and generated pairs."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from backend.models.documents import Document


class ComparisonMode(str, Enum):
    """Which documents participate in a run and how pairs are formed."""

    ONE_TO_ONE = "one_to_one"
    MANY_TO_MANY = "many_to_many"
    FOLDER_TO_FOLDER = "folder_to_folder"
    ALL_TO_ALL = "all_to_all"


class _Selection(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def comparison_mode(self) -> ComparisonMode:
        return ComparisonMode(self.mode)


class OneToOneSelection(_Selection):
    mode: Literal["one_to_one"] = "one_to_one"
    doc_a: Optional[Document] = None
    doc_b: Optional[Document] = None


class ManyToManySelection(_Selection):
    """Two document sets; ``select_all_*`` expands a side to the whole corpus."""

    mode: Literal["many_to_many"] = "many_to_many"
    set_a: Tuple[Document, ...] = ()
    set_b: Tuple[Document, ...] = ()
    select_all_a: bool = False
    select_all_b: bool = False


class FolderToFolderSelection(_Selection):
    mode: Literal["folder_to_folder"] = "folder_to_folder"
    folder_a: Optional[str] = None
    folder_b: Optional[str] = None


class AllToAllSelection(_Selection):
    mode: Literal["all_to_all"] = "all_to_all"


Selection = Annotated[
    Union[OneToOneSelection, ManyToManySelection, FolderToFolderSelection, AllToAllSelection],
    Field(discriminator="mode"),
]

SELECTION_TYPES = {
    ComparisonMode.ONE_TO_ONE: OneToOneSelection,
    ComparisonMode.MANY_TO_MANY: ManyToManySelection,
    ComparisonMode.FOLDER_TO_FOLDER: FolderToFolderSelection,
    ComparisonMode.ALL_TO_ALL: AllToAllSelection,
}


def empty_selection(mode: ComparisonMode) -> Selection:
    """Fresh selection for a mode switch; nothing from the previous mode carries over."""
    return SELECTION_TYPES[ComparisonMode(mode)]()


@dataclass(frozen=True, slots=True)
class DocumentPair:
    """Pair emitted by the generator; ``index`` is its generation position."""

    index: int
    left: Document
    right: Document

    @property
    def ids(self) -> Tuple[str, str]:
        return (self.left.id, self.right.id)


@dataclass(frozen=True)
class CorpusSnapshot:
    """Point-in-time document/folder listing used for one pair-generation call."""

    documents: Tuple[Document, ...] = ()
    folders: Tuple[str, ...] = field(default=())

    @classmethod
    def of(cls, documents: List[Document], folders: Optional[List[str]] = None) -> "CorpusSnapshot":
        if folders is None:
            folders = sorted({doc.folder for doc in documents if doc.folder})
        return cls(documents=tuple(documents), folders=tuple(folders))

    def documents_in_folder(self, folder: str) -> List[Document]:
        return [doc for doc in self.documents if doc.folder == folder]

    def __len__(self) -> int:
        return len(self.documents)
