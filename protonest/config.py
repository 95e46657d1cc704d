import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from protonest.exceptions import ConfigurationError

DEFAULT_FILENAMES = ['protonest.yaml', 'protonest.yml', 'protonest.json']


def parse_kv(value: str) -> tuple[str, str]:
    """Split a ``path:value`` pair on its first colon."""
    if ':' not in value:
        raise ValueError(f"KV-pair '{value}' must contain at least one ':'")
    key, val = value.split(':', 1)
    return key, val


class WorkspaceConfig(BaseModel):
    """A set of definition files compiled into one output tree."""

    proto_dirs: list[str] = Field(
        default_factory=list,
        description='Include directories, must contain every imported definition.',
    )

    proto_files: list[str] = Field(
        ..., min_length=1, description='Definition files to generate code for.'
    )

    output_dir: str = Field(
        ...,
        description='Output directory. Its contents are replaced; the root module '
        'file is placed beside it.',
    )

    tmp_dir: str | None = Field(
        None,
        description='Directory for raw generator output. A temporary directory '
        'is used when not given.',
    )


class GeneratorConfig(BaseModel):
    """Options passed through to protoc and its plugins."""

    protoc: str = Field('protoc', description='The protoc executable.')

    plugin: str = Field('prost', description='Plugin generating message code.')

    service_plugin: str = Field('tonic', description='Plugin generating service code.')

    build_client: bool = Field(False, description='Whether to build client code.')

    build_server: bool = Field(False, description='Whether to build server code.')

    generate_transport: bool = Field(
        False, description='Whether to generate the ::connect and similar functions.'
    )

    type_attributes: list[tuple[str, str]] = Field(
        default_factory=list, description='Type attributes as path:attribute pairs.'
    )

    enum_attributes: list[tuple[str, str]] = Field(
        default_factory=list, description='Enum attributes as path:attribute pairs.'
    )

    client_attributes: list[tuple[str, str]] = Field(
        default_factory=list, description='Client module attributes.'
    )

    server_attributes: list[tuple[str, str]] = Field(
        default_factory=list, description='Server module attributes.'
    )

    @field_validator(
        'type_attributes',
        'enum_attributes',
        'client_attributes',
        'server_attributes',
        mode='before',
    )
    @classmethod
    def _parse_pairs(cls, value):
        if isinstance(value, dict):
            return list(value.items())
        if isinstance(value, list):
            return [parse_kv(item) if isinstance(item, str) else item for item in value]
        return value


class ProtonestConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='PROTONEST_')

    workspaces: list[WorkspaceConfig] = Field(
        ..., description='List of workspaces to process.'
    )

    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)

    prepend_header: bool = Field(
        False, description='Prepend a header with the tool version to every file.'
    )

    toplevel_attribute: str | None = Field(
        None, description='Attribute line added once to the root module.'
    )

    disable_comments: list[str] = Field(
        default_factory=list,
        description="Declaration paths whose comments are removed. '.' removes all.",
    )

    format: bool = Field(False, description='Run rustfmt on the generated code.')

    edition: str = Field('2021', description='Rust edition passed to rustfmt.')

    jobs: int = Field(1, ge=1, description='Threads used for comment sanitization.')


def load_yaml(path: str | Path) -> dict:
    import yaml

    return yaml.load(Path(path).read_text(), Loader=yaml.FullLoader)


def load_json(path: str | Path) -> dict:
    return json.loads(Path(path).read_text())


def _load_file(path: str | Path) -> dict:
    if str(path).endswith('.json'):
        return load_json(path)
    return load_yaml(path)


def _validate(data: dict, source: str) -> ProtonestConfig:
    try:
        return ProtonestConfig(**(data or {}))
    except ValidationError as e:
        errors = e.errors()
        field = '.'.join(str(part) for part in errors[0]['loc']) if errors else None
        raise ConfigurationError(
            f'Invalid configuration: {e}', config_path=source, field=field
        ) from e


def get_config(path: str | None = None) -> ProtonestConfig:
    """Load configuration from a file or the current directory.

    Raises:
        ConfigurationError: If no configuration is found or it is invalid.
    """
    if path:
        if not Path(path).exists():
            raise ConfigurationError('Configuration file not found', config_path=path)
        return _validate(_load_file(path), path)

    cwd = os.getcwd()

    for filename in DEFAULT_FILENAMES:
        candidate = Path(cwd) / filename
        if candidate.exists():
            return _validate(_load_file(candidate), str(candidate))

    candidate = Path(cwd) / 'pyproject.toml'

    if candidate.exists():
        import tomllib

        pyproject = tomllib.loads(candidate.read_text())
        tools = pyproject.get('tool', {})

        if 'protonest' in tools:
            return _validate(tools['protonest'], str(candidate))

    raise ConfigurationError('config not found')
