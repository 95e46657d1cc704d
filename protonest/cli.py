import logging
import traceback
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from protonest.codegen.codegen import Codegen
from protonest.config import (
    GeneratorConfig,
    ProtonestConfig,
    WorkspaceConfig,
    get_config,
    parse_kv,
)
from protonest.exceptions import ProtonestError, ValidationDiffError

console = Console()
app = typer.Typer(
    name='protonest',
    help='Generate a nested Rust module tree from protobuf definitions',
    no_args_is_help=True,
)


def _kv_pairs(values: list[str] | None) -> list[tuple[str, str]]:
    pairs = []
    for value in values or []:
        try:
            pairs.append(parse_kv(value))
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e
    return pairs


ConfigOption = Annotated[
    str | None,
    typer.Option('--config', '-c', help='Path to configuration file (YAML or JSON)'),
]
ProtoDirsOption = Annotated[
    list[str] | None,
    typer.Option(
        '--proto-dir', '-d', help='Directory containing definitions, may be repeated'
    ),
]
ProtoFilesOption = Annotated[
    list[str] | None,
    typer.Option('--proto-file', '-f', help='Definition file to generate, may be repeated'),
]
OutputDirOption = Annotated[
    str | None,
    typer.Option(
        '--output-dir',
        '-o',
        help='Output directory, its contents are replaced. The root module '
        'file is placed in its parent.',
    ),
]
TmpDirOption = Annotated[
    str | None,
    typer.Option('--tmp-dir', '-t', help='Directory for raw generator output'),
]
FormatOption = Annotated[
    bool, typer.Option('--format', help='Run rustfmt on the generated code')
]
PrependHeaderOption = Annotated[
    bool,
    typer.Option(
        '--prepend-header', '-p', help='Prepend a header with the tool version'
    ),
]
ToplevelAttributeOption = Annotated[
    str | None,
    typer.Option('--toplevel-attribute', help='Attribute added to the root module'),
]
DisableCommentsOption = Annotated[
    list[str] | None,
    typer.Option(
        '--disable-comments', help="Remove comments for a path, '.' removes all"
    ),
]
TypeAttributeOption = Annotated[
    list[str] | None,
    typer.Option('--type-attribute', help='Type attribute as path:attribute'),
]
EnumAttributeOption = Annotated[
    list[str] | None,
    typer.Option('--enum-attribute', help='Enum attribute as path:attribute'),
]
ClientAttributeOption = Annotated[
    list[str] | None,
    typer.Option('--client-attribute', help='Client module attribute as path:attribute'),
]
ServerAttributeOption = Annotated[
    list[str] | None,
    typer.Option('--server-attribute', help='Server module attribute as path:attribute'),
]
BuildClientOption = Annotated[
    bool, typer.Option('--build-client', help='Generate service client code')
]
BuildServerOption = Annotated[
    bool, typer.Option('--build-server', help='Generate service server code')
]
TransportOption = Annotated[
    bool,
    typer.Option('--generate-transport', help='Generate ::connect and similar functions'),
]


def build_config(
    config: str | None,
    proto_dirs: list[str] | None,
    proto_files: list[str] | None,
    output_dir: str | None,
    tmp_dir: str | None,
    **options,
) -> ProtonestConfig:
    """Assemble the configuration from a file and/or command line flags.

    Inline workspace flags describe a single workspace. Without them the
    configuration file (given or discovered) supplies the workspaces. Flags
    that were set override the file's shared options.
    """
    generator_options = {
        'type_attributes': _kv_pairs(options.pop('type_attributes', None)),
        'enum_attributes': _kv_pairs(options.pop('enum_attributes', None)),
        'client_attributes': _kv_pairs(options.pop('client_attributes', None)),
        'server_attributes': _kv_pairs(options.pop('server_attributes', None)),
        'build_client': options.pop('build_client', False),
        'build_server': options.pop('build_server', False),
        'generate_transport': options.pop('generate_transport', False),
    }
    generator_overrides = {key: value for key, value in generator_options.items() if value}
    overrides = {key: value for key, value in options.items() if value}

    if output_dir is None and not proto_files:
        base = get_config(config)
        generator = base.generator.model_copy(update=generator_overrides)
        return base.model_copy(update={**overrides, 'generator': generator})

    if output_dir is None or not proto_files:
        raise typer.BadParameter('--output-dir and at least one --proto-file are required')

    return ProtonestConfig(
        workspaces=[
            WorkspaceConfig(
                proto_dirs=proto_dirs or [],
                proto_files=proto_files,
                output_dir=output_dir,
                tmp_dir=tmp_dir,
            )
        ],
        generator=GeneratorConfig(**generator_overrides),
        **overrides,
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(message)s',
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _run(config: ProtonestConfig, validate: bool) -> None:
    action = 'Validating' if validate else 'Generating'
    for workspace in config.workspaces:
        with Progress(
            SpinnerColumn(),
            TextColumn('[progress.description]{task.description}'),
            console=console,
        ) as progress:
            task = progress.add_task(
                f'{action} code for {len(workspace.proto_files)} files '
                f'in {workspace.output_dir}...',
                total=None,
            )

            codegen = Codegen(config, workspace)
            report = codegen.validate() if validate else codegen.generate()

            progress.update(task, description=f'{action} completed for {workspace.output_dir}!')

        if report:
            console.print(f'[dim]Updated {report.count} files:[/dim]')
            for line in report.lines():
                console.print(f'  - {line}')
        else:
            console.print(f'No changes in {workspace.output_dir}')


def _execute(config: ProtonestConfig, validate: bool) -> None:
    try:
        _run(config, validate)
    except ValidationDiffError as e:
        console.print(f'[red]Error:[/red] {e.message}')
        for line in e.report.lines():
            console.print(f'  - {line}')
        raise typer.Exit(1)
    except ProtonestError as e:
        console.print(f'[red]Error:[/red] {e.message}')
        raise typer.Exit(1)
    except Exception as e:
        console.print(f'[red]Error:[/red] {str(e)}')
        traceback.print_exc()
        raise typer.Exit(1)


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option('--verbose', '-v', help='Enable debug logging')
    ] = False,
) -> None:
    """Generate a nested Rust module tree from protobuf definitions."""
    _configure_logging(verbose)


@app.command()
def generate(
    config: ConfigOption = None,
    proto_dirs: ProtoDirsOption = None,
    proto_files: ProtoFilesOption = None,
    output_dir: OutputDirOption = None,
    tmp_dir: TmpDirOption = None,
    format: FormatOption = False,
    prepend_header: PrependHeaderOption = False,
    toplevel_attribute: ToplevelAttributeOption = None,
    disable_comments: DisableCommentsOption = None,
    type_attributes: TypeAttributeOption = None,
    enum_attributes: EnumAttributeOption = None,
    client_attributes: ClientAttributeOption = None,
    server_attributes: ServerAttributeOption = None,
    build_client: BuildClientOption = False,
    build_server: BuildServerOption = False,
    generate_transport: TransportOption = False,
) -> None:
    """Generate Rust code for definition files, overwriting old files if they differ.

    Examples:
        protonest generate
        protonest generate --config protonest.yaml
        protonest generate -d proto -f proto/api.proto -o src/proto_types
    """
    try:
        cfg = build_config(**locals())
    except ProtonestError as e:
        console.print(f'[red]Error:[/red] {e.message}')
        raise typer.Exit(1)
    _execute(cfg, validate=False)


@app.command()
def validate(
    config: ConfigOption = None,
    proto_dirs: ProtoDirsOption = None,
    proto_files: ProtoFilesOption = None,
    output_dir: OutputDirOption = None,
    tmp_dir: TmpDirOption = None,
    format: FormatOption = False,
    prepend_header: PrependHeaderOption = False,
    toplevel_attribute: ToplevelAttributeOption = None,
    disable_comments: DisableCommentsOption = None,
    type_attributes: TypeAttributeOption = None,
    enum_attributes: EnumAttributeOption = None,
    client_attributes: ClientAttributeOption = None,
    server_attributes: ServerAttributeOption = None,
    build_client: BuildClientOption = False,
    build_server: BuildServerOption = False,
    generate_transport: TransportOption = False,
) -> None:
    """Generate Rust code in memory and compare it with the files on disk.

    Exits with status 1 on any difference.
    """
    try:
        cfg = build_config(**locals())
    except ProtonestError as e:
        console.print(f'[red]Error:[/red] {e.message}')
        raise typer.Exit(1)
    _execute(cfg, validate=True)


@app.command()
def version() -> None:
    """Show the version of protonest."""
    try:
        from protonest._version import version

        console.print(f'protonest version: {version}')
    except ImportError:
        console.print('protonest version: unknown')


if __name__ == '__main__':
    app()
