from pathlib import Path
from typing import Optional

from loguru import logger

from ..errors import InputPathError, ParseError
from ..helpers import has_documentclass, is_tex_file
from ..nodes import DocumentTree, FileNodes
from ..storage import LocalStorage, Storage
from .latex import LatexDocumentParser

MAIN_FILE_NAME = "main.tex"


def discover_tex_files(input_path: Path, storage: Storage) -> list[Path]:
    """The input file itself, or every TeX file of the input directory (sorted)."""
    if storage.is_file(input_path):
        return [input_path]
    if storage.is_dir(input_path):
        return [p for p in storage.list_files(input_path) if is_tex_file(p)]
    raise InputPathError(f"Input path does not exist: {input_path}")


def find_root_file(files: list[Path], storage: Storage) -> Optional[Path]:
    """
    The file holding `\\documentclass`. With several candidates `main.tex` wins,
    otherwise the first one in sorted order.
    """
    candidates = []
    for path in files:
        try:
            if has_documentclass(storage.read_text(path)):
                candidates.append(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {path} while looking for the root file: {e}")
    if not candidates:
        return None
    for path in candidates:
        if path.name == MAIN_FILE_NAME:
            return path
    return sorted(candidates)[0]


def parse_project(input_path: Path, parser: Optional[LatexDocumentParser] = None,
                  storage: Optional[Storage] = None) -> DocumentTree:
    """
    Parses a single file or a directory of TeX files.
    For a single file a parse error propagates; in a directory it is recorded
    in `DocumentTree.errors` and the other files are still parsed.
    """
    storage = storage if storage is not None else LocalStorage()
    parser = parser if parser is not None else LatexDocumentParser(storage)

    files = discover_tex_files(input_path, storage)
    tree = DocumentTree(root_file=find_root_file(files, storage))
    single_file = storage.is_file(input_path)

    for path in files:
        try:
            tree.files.append(FileNodes(path, parser.parse_file(path)))
        except ParseError as e:
            if single_file:
                raise
            logger.error(f"Skipping {path}: {e}")
            tree.errors.append((path, e))

    logger.info(f"Parsed {len(tree.files)} file(s), root file: {tree.root_file}")
    return tree
