from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

from .config_io import dump_json
from .config_models import PipelineConfig
from .constants import LOG_DIR_NAME, ORIGINAL_DIR_NAME, TRANSLATED_DIR_NAME, TRANSLATION_LOG_FILENAME
from .diagnostics import DiagnosticLog
from .enums import DiagnosticKind
from .errors import CopyFileDirError, InputPathError
from .helpers import get_relative_path, is_tex_file, safe_identifier
from .nodes import DocumentTree, FileNodes, tree_to_dict
from .parser_mod.latex import LatexDocumentParser
from .parser_mod.project import parse_project
from .pipeline import FileTranslationResult, select_translator, translate_document_async
from .storage import LocalStorage, Storage
from .translator import Translator


@dataclass
class ProjectLayout:
    """`<output_dir>/<name>/{original,translated,log}`"""
    project_dir: Path
    original_dir: Path
    translated_dir: Path
    log_dir: Path

    @classmethod
    def for_input(cls, input_path: Path, output_dir: Path, storage: Storage) -> "ProjectLayout":
        name = input_path.name if storage.is_dir(input_path) else input_path.stem
        project_dir = output_dir / name
        return cls(project_dir,
                   project_dir / ORIGINAL_DIR_NAME,
                   project_dir / TRANSLATED_DIR_NAME,
                   project_dir / LOG_DIR_NAME)


@dataclass
class ProjectTranslationResult:
    layout: ProjectLayout
    output_path: Path
    files: list[FileTranslationResult] = field(default_factory=list)
    failed_files: list[Path] = field(default_factory=list)
    diagnostics: DiagnosticLog = field(default_factory=DiagnosticLog)

    @property
    def unresolved_ids(self) -> list[str]:
        return self.diagnostics.unresolved_ids


class ProjectTranslator:
    """
    Translates a single .tex file or a directory of them into the output layout.

    Files are translated one at a time, the root file first. In directory mode a
    failing file is logged and skipped; a single-file run lets the error propagate.
    """

    def __init__(self, config: PipelineConfig, translator: Optional[Translator] = None,
                 storage: Optional[Storage] = None):
        self.config = config
        self.storage = storage if storage is not None else LocalStorage()
        self.parser = LatexDocumentParser(self.storage)
        self._translator = translator

    @property
    def translator(self) -> Translator:
        if self._translator is None:
            self._translator = select_translator(self.config)
        return self._translator

    async def translate_async(self, input_path: Path, output_dir: Optional[Path] = None) -> ProjectTranslationResult:
        input_path = input_path.resolve()
        if not self.storage.is_file(input_path) and not self.storage.is_dir(input_path):
            raise InputPathError(f"Input path does not exist: {input_path}")

        layout = ProjectLayout.for_input(input_path, output_dir or Path(self.config.output_dir), self.storage)
        for d in (layout.original_dir, layout.translated_dir, layout.log_dir):
            self.storage.make_dirs(d)
        logger.info(f"Project output directory: {layout.project_dir}")

        sink_id = None
        if self.config.save_intermediate_files:
            sink_id = logger.add(layout.log_dir / TRANSLATION_LOG_FILENAME, level="DEBUG")
        try:
            return await self._run(input_path, layout)
        finally:
            if sink_id is not None:
                logger.remove(sink_id)

    async def _run(self, input_path: Path, layout: ProjectLayout) -> ProjectTranslationResult:
        self._copy_original(input_path, layout)

        logger.info("Parsing the LaTeX project...")
        tree = parse_project(input_path, self.parser, self.storage)
        if self.config.save_intermediate_files:
            self._save_ast(tree, input_path, layout)

        single_file = self.storage.is_file(input_path)
        input_root = input_path.parent if single_file else input_path
        result = ProjectTranslationResult(layout, layout.translated_dir)

        for path, error in tree.errors:
            result.failed_files.append(path)
            result.diagnostics.add(DiagnosticKind.FILE_FAILURE, f"Parse error: {error}", path=path)

        processed: set[Path] = set()
        for file_nodes in tree.ordered_files():
            if file_nodes.path in processed:
                continue
            processed.add(file_nodes.path)
            if single_file:
                file_result = await self._translate_file(file_nodes, input_root, layout)
            else:
                try:
                    file_result = await self._translate_file(file_nodes, input_root, layout)
                except Exception as e:
                    logger.exception(f"Error while processing {file_nodes.path}, file skipped")
                    result.failed_files.append(file_nodes.path)
                    result.diagnostics.add(DiagnosticKind.FILE_FAILURE, str(e), path=file_nodes.path)
                    continue
            result.files.append(file_result)
            result.diagnostics.extend(file_result.diagnostics)

        if single_file:
            result.output_path = layout.translated_dir / input_path.name
        else:
            self._copy_non_tex_files(input_path, layout)
            if tree.root_file is not None:
                result.output_path = layout.translated_dir / get_relative_path(tree.root_file, input_root)

        logger.info(f"Translation finished: {len(result.files)} file(s) translated, "
                    f"{len(result.failed_files)} failed. Output: {result.output_path}")
        return result

    async def _translate_file(self, file_nodes: FileNodes, input_root: Path, layout: ProjectLayout) -> FileTranslationResult:
        relative = get_relative_path(file_nodes.path, input_root)
        logger.info(f"Processing file: {relative}")

        result = await translate_document_async(file_nodes.nodes, self.config, self.translator, file_nodes.path)

        if self.config.save_intermediate_files:
            ident = safe_identifier(relative)
            self.storage.write_text(layout.log_dir / f"{ident}_masked.txt", result.masked_text)
            self.storage.write_text(layout.log_dir / f"{ident}_masked_map.json",
                                    dump_json(result.session.registry.to_json_dict()))
            self.storage.write_text(layout.log_dir / f"{ident}_translated.txt", result.translated_text)

        target = layout.translated_dir / relative
        self.storage.write_text(target, result.output)
        logger.info(f"File {relative} saved to {target}")
        return result

    def _copy_original(self, input_path: Path, layout: ProjectLayout) -> None:
        try:
            if self.storage.is_file(input_path):
                self.storage.copy_file(input_path, layout.original_dir / input_path.name)
            else:
                self.storage.copy_tree(input_path, layout.original_dir)
        except OSError as e:
            raise CopyFileDirError(f"Could not copy {input_path} to {layout.original_dir}: {e}", original_exception=e)
        logger.info(f"Original copied to {layout.original_dir}")

    def _copy_non_tex_files(self, input_path: Path, layout: ProjectLayout) -> None:
        for path in self.storage.list_files(input_path):
            if is_tex_file(path):
                continue
            target = layout.translated_dir / get_relative_path(path, input_path)
            try:
                self.storage.copy_file(path, target)
            except OSError as e:
                logger.warning(f"Could not copy {path} to {target}: {e}")

    def _save_ast(self, tree: DocumentTree, input_path: Path, layout: ProjectLayout) -> None:
        name = input_path.name if self.storage.is_dir(input_path) else input_path.stem
        self.storage.write_text(layout.log_dir / f"{name}_ast.json", dump_json(tree_to_dict(tree)))
