import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from typing_extensions import Annotated

from tex_trans_lib import errors
from tex_trans_lib.config_io import dump_json, load_or_default, write_pipeline_config
from tex_trans_lib.config_models import PipelineConfig
from tex_trans_lib.constants import CONFIG_FILENAME
from tex_trans_lib.helpers import safe_identifier
from tex_trans_lib.masking_mod.walker import mask_document
from tex_trans_lib.nodes import tree_to_dict
from tex_trans_lib.parser_mod.project import parse_project
from tex_trans_lib.project_translator import ProjectTranslator
from tex_trans_lib.storage import LocalStorage

app = typer.Typer(
    name="tex-translator",
    help="Translates LaTeX documents with a language model while keeping math, figures and references intact.",
    no_args_is_help=True
)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show diagnostic logs.")] = False,
) -> None:
    logger.remove()
    logger.add(sys.stderr, level="TRACE" if verbose else "INFO")


ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help=f"JSON configuration file. Defaults to ./{CONFIG_FILENAME} when present.")
]


def _load_config(config_path: Optional[Path]) -> PipelineConfig:
    if config_path is None and Path(CONFIG_FILENAME).is_file():
        config_path = Path(CONFIG_FILENAME)
    try:
        return load_or_default(config_path)
    except errors.LoadConfigError as e:
        typer.secho(f"Error loading configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


async def _translate_command(config: PipelineConfig, input_path: Path) -> None:
    translator = ProjectTranslator(config)
    try:
        result = await translator.translate_async(input_path)
    except errors.DocumentTranslationError as e:
        typer.secho(f"Error translating '{input_path}': {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.secho(f"An unexpected error occurred during translation: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"Translation finished. Output: {result.output_path}", fg=typer.colors.GREEN)
    if result.failed_files:
        typer.secho(f"{len(result.failed_files)} file(s) could not be translated:", fg=typer.colors.RED, err=True)
        for path in result.failed_files:
            typer.echo(f"  - {path}", err=True)
    unresolved = result.unresolved_ids
    if unresolved:
        typer.secho(f"{len(unresolved)} placeholder(s) could not be restored, their tokens are left in the output:",
                    fg=typer.colors.YELLOW, err=True)
        for placeholder_id in unresolved:
            typer.echo(f"  - {placeholder_id}", err=True)


@app.command("translate")
def translate_cli(
    input_path: Annotated[Path, typer.Argument(help="A .tex file or a directory holding a LaTeX project.")],
    config_path: ConfigOption = None,
    target_language: Annotated[Optional[str], typer.Option("--target", "-t", help="Target language.")] = None,
    source_language: Annotated[Optional[str], typer.Option("--source", "-s", help="Source language.")] = None,
    output_dir: Annotated[Optional[Path], typer.Option("--output-dir", "-o", help="Output directory.")] = None,
    max_chunk_size: Annotated[Optional[int], typer.Option(help="Maximum chunk size in characters.")] = None,
    bypass: Annotated[bool, typer.Option("--bypass", help="Skip the LLM, use the masked text as translation.")] = False,
    ctex: Annotated[bool, typer.Option("--ctex", help="Add \\usepackage[UTF8]{ctex} to the translated root file.")] = False,
    no_intermediate: Annotated[bool, typer.Option("--no-intermediate", help="Do not write masked/translated intermediate files.")] = False,
):
    """Translates a LaTeX file or project."""
    config = _load_config(config_path)
    if target_language is not None:
        config.translation.target_language = target_language
    if source_language is not None:
        config.translation.source_language = source_language
    if output_dir is not None:
        config.output_dir = str(output_dir)
    if max_chunk_size is not None:
        config.translation.max_chunk_size = max_chunk_size
    if bypass:
        config.translation.bypass_llm_translation = True
    if ctex:
        config.translation.add_ctex_package = True
    if no_intermediate:
        config.save_intermediate_files = False

    asyncio.run(_translate_command(config, input_path))


@app.command("mask")
def mask_cli(
    input_path: Annotated[Path, typer.Argument(help="A .tex file or a LaTeX project directory.")],
    output_dir: Annotated[Path, typer.Option("--output-dir", "-o", help="Where to write the masked files.")] = Path("masked"),
    config_path: ConfigOption = None,
):
    """Writes the masked text and the placeholder map of every file, without translating."""
    config = _load_config(config_path)
    storage = LocalStorage()
    try:
        tree = parse_project(input_path.resolve(), storage=storage)
    except errors.DocumentTranslationError as e:
        typer.secho(f"Error parsing '{input_path}': {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    root = input_path.resolve()
    root = root.parent if storage.is_file(root) else root
    storage.make_dirs(output_dir)
    for file_nodes in tree.ordered_files():
        masked = mask_document(file_nodes.nodes, config.masking)
        ident = safe_identifier(file_nodes.path.relative_to(root))
        storage.write_text(output_dir / f"{ident}_masked.txt", masked.text)
        storage.write_text(output_dir / f"{ident}_masked_map.json", dump_json(masked.session.registry.to_json_dict()))
        typer.secho(f"{file_nodes.path.name}: {len(masked.session.registry)} placeholders", fg=typer.colors.GREEN)


@app.command("parse")
def parse_cli(
    input_path: Annotated[Path, typer.Argument(help="A .tex file or a LaTeX project directory.")],
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="JSON file to write. Prints to stdout when omitted.")] = None,
):
    """Dumps the parsed node tree as JSON."""
    storage = LocalStorage()
    try:
        tree = parse_project(input_path.resolve(), storage=storage)
    except errors.DocumentTranslationError as e:
        typer.secho(f"Error parsing '{input_path}': {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    contents = dump_json(tree_to_dict(tree))
    if output is None:
        typer.echo(contents)
        return
    storage.write_text(output, contents)
    typer.secho(f"Node tree written to {output}", fg=typer.colors.GREEN)


@app.command("init-config")
def init_config_cli(
    path: Annotated[Path, typer.Option(help="Where to write the configuration file.")] = Path(CONFIG_FILENAME),
):
    """Writes a configuration file with the default values."""
    try:
        write_pipeline_config(path, PipelineConfig())
        typer.secho(f"Default configuration written to {path}", fg=typer.colors.GREEN)
    except errors.WriteConfigError as e:
        typer.secho(f"Error writing configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
