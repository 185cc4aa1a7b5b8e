import json
from pathlib import Path

from pydantic import ValidationError

from .config_models import PipelineConfig
from .errors import LoadConfigError, WriteConfigError


def write_pipeline_config(config_file_path: Path, config: PipelineConfig) -> None:
    """Writes the configuration to a JSON file (camelCase keys)."""
    try:
        json_str = config.model_dump_json(indent=2, by_alias=True)
        config_file_path.parent.mkdir(parents=True, exist_ok=True)
        config_file_path.write_text(json_str, encoding="utf-8")
    except IOError as e:
        raise WriteConfigError(f"IO error writing config to {config_file_path}: {e}", original_exception=e)


def load_pipeline_config(config_file_path: Path) -> PipelineConfig:
    """Loads the configuration from a JSON file."""
    if not config_file_path.is_file():
        raise LoadConfigError(f"Config file not found: {config_file_path}")
    try:
        contents = config_file_path.read_text(encoding="utf-8")
        return PipelineConfig.model_validate_json(contents)
    except IOError as e:
        raise LoadConfigError(f"IO error reading config {config_file_path}: {e}", original_exception=e)
    except ValidationError as e:
        raise LoadConfigError(f"Incorrect config file format: {config_file_path} - {e}", original_exception=e)


def load_or_default(config_file_path: Path | None) -> PipelineConfig:
    """Loads the given config file, or returns the defaults when no file is given."""
    if config_file_path is None:
        return PipelineConfig()
    return load_pipeline_config(config_file_path)


def dump_json(data: object, pretty: bool = True) -> str:
    return json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)
