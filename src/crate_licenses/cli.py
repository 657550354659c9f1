"""Command-line interface for crate_licenses.

Provides the main entry point and subcommands for generating license
attribution documents for Rust crates and checking them against a policy.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from jinja2 import TemplateError
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from crate_licenses.config import CONFIG_FILENAME, DEFAULT_CONFIG, find_config
from crate_licenses.corpus import LicenseCorpus, load_default_corpus
from crate_licenses.corpus.fetch import SPDXCorpusFetcher
from crate_licenses.engine import PolicyEngine
from crate_licenses.models import CrateState, EvaluationResult, Severity
from crate_licenses.reporters import TemplateReporter, default_template_text
from crate_licenses.reporters.template import DEFAULT_TEMPLATE_NAME
from crate_licenses.scanners import get_scanner
from crate_licenses.scanners.cargo import MANIFEST_FILENAME, load_manifest

app = typer.Typer(
    name="crate-licenses",
    help="License attribution and compliance for Rust crate graphs.",
    no_args_is_help=True,
)
corpus_app = typer.Typer(help="Inspect and refresh license corpora.", no_args_is_help=True)
app.add_typer(corpus_app, name="corpus")

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger("crate_licenses")


def _setup_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.getLogger("crate_licenses").setLevel(level)


def _print_error(prefix: str, error: object) -> None:
    err_console.print(f"[red]{prefix}:[/red] {escape(str(error))}", soft_wrap=True)


def _manifest_dir(scan: Path) -> Path:
    return scan if scan.is_dir() else scan.parent


def _evaluate(
    scan: Path,
    config_path: Optional[Path],
    corpus_dir: Optional[Path],
    workers: int,
    status: Console,
) -> EvaluationResult:
    """Scan the crate graph and evaluate it against the policy.

    This is shared logic used by both the generate and check commands.

    Raises:
        ValueError: If the scan target, configuration or corpus is invalid.
        OSError: If a file cannot be read.
    """
    if scan.is_dir():
        scan = scan / MANIFEST_FILENAME

    scanner = get_scanner(scan)
    logger.debug("Using scanner: %s", scanner.source_name)

    config = find_config(_manifest_dir(scan), config_path)
    corpus = LicenseCorpus.load(corpus_dir) if corpus_dir else None

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=status,
        transient=True,
    ) as progress:
        task = progress.add_task("Scanning crates...", total=None)
        crates = scanner.scan()
        progress.update(task, description=f"Evaluating {len(crates)} crates...")
        engine = PolicyEngine(
            config.policy,
            corpus=corpus,
            threshold=config.confidence_threshold,
            max_workers=workers,
        )
        result = engine.evaluate(crates)

    status.print(f"Found [bold]{len(crates)}[/bold] crates")
    return result


def _print_diagnostics(result: EvaluationResult) -> None:
    for diagnostic in result.diagnostics:
        err_console.print(
            str(diagnostic),
            style="red" if diagnostic.severity is Severity.ERROR else "yellow",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )


def _select_reporter(template: Optional[Path], manifest_dir: Path) -> TemplateReporter:
    if template is None:
        local = manifest_dir / DEFAULT_TEMPLATE_NAME
        if local.is_file():
            template = local
    if template:
        logger.debug("Using template %s", template)
        return TemplateReporter(template_path=template)
    return TemplateReporter()


ScanOption = Annotated[
    Path,
    typer.Option(
        "--scan",
        "-s",
        help="Path to Cargo.toml, a crate directory, or `cargo metadata` JSON output",
        exists=True,
        readable=True,
    ),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help=f"Policy file (defaults to {CONFIG_FILENAME} next to the manifest)",
    ),
]
CorpusOption = Annotated[
    Optional[Path],
    typer.Option(
        "--corpus",
        help="Corpus directory to use instead of the bundled one",
        exists=True,
        file_okay=False,
    ),
]
WorkersOption = Annotated[
    int,
    typer.Option(
        "--workers",
        "-j",
        help="Number of crates evaluated in parallel",
        min=1,
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
]


@app.command()
def generate(
    scan: ScanOption,
    template: Annotated[
        Optional[Path],
        typer.Option(
            "--template",
            "-t",
            help=f"Custom Jinja2 template file (defaults to {DEFAULT_TEMPLATE_NAME} "
            "next to the manifest, then the bundled template)",
            exists=True,
            readable=True,
        ),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output file path (defaults to stdout)",
        ),
    ] = None,
    config: ConfigOption = None,
    corpus: CorpusOption = None,
    workers: WorkersOption = 1,
    verbose: VerboseOption = False,
) -> None:
    """Generate license attribution documentation.

    Scans the crate graph, checks every crate against the accepted licenses
    and renders the licenses in use. Nothing is rendered if a crate is
    rejected.

    Exit codes:
        0 - Report generated
        1 - A crate was rejected or an error occurred
    """
    _setup_logging(verbose)
    status = console if output else err_console

    try:
        result = _evaluate(scan, config, corpus, workers, status)
    except (ValueError, OSError) as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)

    _print_diagnostics(result)

    if not result.passed:
        err_console.print(
            f"[red]{len(result.errors)} crate(s) failed the license policy[/red]"
        )
        raise typer.Exit(code=1)

    try:
        reporter = _select_reporter(template, _manifest_dir(scan))
        if output:
            reporter.write(result.report, output)
            console.print(f"[green]Generated:[/green] {output}")
        else:
            typer.echo(reporter.render(result.report), nl=False)
    except (TemplateError, OSError) as e:
        _print_error("Error writing output", e)
        raise typer.Exit(code=1)


@app.command()
def check(
    scan: ScanOption,
    config: ConfigOption = None,
    corpus: CorpusOption = None,
    workers: WorkersOption = 1,
    verbose: VerboseOption = False,
) -> None:
    """Check license compliance against the accepted licenses.

    Exit codes:
        0 - All crates compliant
        1 - Violations found or error occurred
    """
    _setup_logging(verbose)

    try:
        result = _evaluate(scan, config, corpus, workers, console)
    except (ValueError, OSError) as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)

    _print_diagnostics(result)

    if not result.evaluations:
        console.print("[green]No crates to check[/green]")
        raise typer.Exit(code=0)

    table = Table(title="License check")
    table.add_column("Crate")
    table.add_column("License")
    table.add_column("Source")
    table.add_column("State")

    state_styles = {
        CrateState.ACCEPTED: "green",
        CrateState.REJECTED: "red",
        CrateState.NO_EXPRESSION: "yellow",
        CrateState.PARSE_FAILED: "yellow",
    }
    for evaluation in result.evaluations:
        candidate = evaluation.candidate
        table.add_row(
            escape(evaluation.crate.display),
            escape(candidate.expression or "-"),
            candidate.provenance.value,
            f"[{state_styles[evaluation.state]}]{evaluation.state.value}[/]",
        )
    console.print(table)

    if not result.passed:
        console.print(f"\n[red]Violations ({len(result.errors)})[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"\n[green]All {len(result.evaluations)} crates are compliant![/green]"
    )


def _write_file(path: Path, content: str, overwrite: bool) -> None:
    if path.exists() and not overwrite:
        console.print(f"[yellow]Skipping existing file:[/yellow] {path}")
        return
    path.write_text(content, encoding="utf-8")
    console.print(f"[green]Created:[/green] {path}")


@app.command()
def init(
    manifest_dir: Annotated[
        Path,
        typer.Option(
            "--manifest-dir",
            "-m",
            help="Directory containing the crate's Cargo.toml",
        ),
    ] = Path("."),
    no_template: Annotated[
        bool,
        typer.Option(
            "--no-template",
            help=f"Only write {CONFIG_FILENAME}, not the {DEFAULT_TEMPLATE_NAME} template",
        ),
    ] = False,
    overwrite: Annotated[
        bool,
        typer.Option(
            "--overwrite",
            help="Replace existing files",
        ),
    ] = False,
) -> None:
    """Create a default policy file and report template for a crate."""
    manifest = manifest_dir / MANIFEST_FILENAME
    if not manifest.is_file():
        _print_error("Error", f"could not find '{MANIFEST_FILENAME}' in '{manifest_dir}'")
        raise typer.Exit(code=1)

    try:
        load_manifest(manifest)
        _write_file(manifest_dir / CONFIG_FILENAME, DEFAULT_CONFIG, overwrite)
        if not no_template:
            _write_file(
                manifest_dir / DEFAULT_TEMPLATE_NAME, default_template_text(), overwrite
            )
    except (ValueError, OSError) as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)


@corpus_app.command("fetch")
def corpus_fetch(
    identifiers: Annotated[
        list[str],
        typer.Argument(help="SPDX license identifiers to download"),
    ],
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Directory to write the corpus to",
        ),
    ],
    ref: Annotated[
        str,
        typer.Option(
            "--ref",
            help="Git ref (tag or branch) of the SPDX license-list-data repository",
        ),
    ] = "main",
    verbose: VerboseOption = False,
) -> None:
    """Download license texts from the SPDX license list into a corpus directory."""
    _setup_logging(verbose)

    async def run_fetch() -> LicenseCorpus:
        async with SPDXCorpusFetcher(ref=ref) as fetcher:
            return await fetcher.fetch_corpus(identifiers)

    corpus = asyncio.run(run_fetch())

    missing = [i for i in identifiers if i not in corpus]
    for identifier in missing:
        err_console.print(f"[yellow]Could not fetch:[/yellow] {escape(identifier)}")

    if not len(corpus):
        _print_error("Error", "no license texts were downloaded")
        raise typer.Exit(code=1)

    try:
        corpus.save(output)
    except OSError as e:
        _print_error("Error writing corpus", e)
        raise typer.Exit(code=1)

    console.print(
        f"[green]Wrote {len(corpus)} licenses[/green] "
        f"(SPDX {corpus.version}) to {output}"
    )
    if missing:
        raise typer.Exit(code=1)


@corpus_app.command("show")
def corpus_show(
    corpus_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--corpus",
            help="Corpus directory (defaults to the bundled corpus)",
        ),
    ] = None,
) -> None:
    """List the licenses in a corpus."""
    try:
        corpus = LicenseCorpus.load(corpus_dir) if corpus_dir else load_default_corpus()
    except (ValueError, OSError) as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)

    table = Table(title=f"License corpus (SPDX {corpus.version or 'unknown'})")
    table.add_column("Identifier")
    table.add_column("Name")
    for entry in corpus:
        table.add_row(entry.identifier, entry.name)
    console.print(table)
    console.print(f"[bold]Entries:[/bold] {len(corpus)}")


if __name__ == "__main__":
    app()
