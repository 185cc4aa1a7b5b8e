import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path


class Storage(ABC):
    """File access used by the parser and the project translator."""

    @abstractmethod
    def read_text(self, path: Path) -> str:
        pass

    @abstractmethod
    def write_text(self, path: Path, contents: str) -> None:
        """Writes the file, creating missing parent directories."""
        pass

    @abstractmethod
    def copy_file(self, src: Path, dst: Path) -> None:
        pass

    @abstractmethod
    def copy_tree(self, src: Path, dst: Path) -> None:
        pass

    @abstractmethod
    def is_file(self, path: Path) -> bool:
        pass

    @abstractmethod
    def is_dir(self, path: Path) -> bool:
        pass

    @abstractmethod
    def make_dirs(self, path: Path) -> None:
        pass

    @abstractmethod
    def list_files(self, root: Path) -> list[Path]:
        """All files under `root`, recursively, in sorted order."""
        pass


class LocalStorage(Storage):
    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, contents: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents, encoding="utf-8")

    def copy_file(self, src: Path, dst: Path) -> None:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)

    def copy_tree(self, src: Path, dst: Path) -> None:
        shutil.copytree(src, dst, dirs_exist_ok=True)

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def make_dirs(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def list_files(self, root: Path) -> list[Path]:
        res: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in sorted(filenames):
                res.append(Path(dirpath) / name)
        return res
