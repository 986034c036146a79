from __future__ import annotations

from abc import ABC, abstractmethod

from a11y_scanner.models import SourceFile


class FileSource(ABC):
    @abstractmethod
    def list_files(self) -> list[SourceFile]:
        raise NotImplementedError
