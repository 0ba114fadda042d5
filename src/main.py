"""Command-line entry point: resolve-diff <repo_path> <old_rev> <new_rev>."""

from pathlib import Path
from typing import Annotated, List, Optional

import typer

from src.config.logging import configure_logging, get_logger
from src.config.settings import get_settings
from src.exceptions import RefResolverError
from src.schemas import ChangeKind, DiffResult
from src.services import create_ref_resolver_from_settings

logger = get_logger("cli")

app = typer.Typer(
    help="Clean stale git locks, fetch revisions with retry and print the diff between them.",
    add_completion=False,
)


def parse_filter(value: str) -> List[str]:
    """Split a comma separated list of diff-filter letters such as 'A,M'."""
    known = {kind.value for kind in ChangeKind}
    kinds = []
    for item in value.split(","):
        letter = item.strip().upper()
        if not letter:
            continue
        if letter not in known:
            allowed = ",".join(kind.value for kind in ChangeKind)
            raise typer.BadParameter(f"unknown change kind '{item}' (allowed: {allowed})")
        kinds.append(letter)
    return kinds


def render(result: DiffResult, show_kind: bool = False, as_json: bool = False) -> str:
    if as_json:
        return result.model_dump_json(indent=2)
    if show_kind:
        return "\n".join(f"{change.path}\t{change.kind.value}" for change in result.changes)
    return "\n".join(change.path for change in result.changes)


@app.command()
def resolve_diff(
    repo_path: Annotated[Path, typer.Argument(help="Git working directory")],
    old_rev: Annotated[str, typer.Argument(help="Old tag, branch or commit")],
    new_rev: Annotated[str, typer.Argument(help="New tag, branch or commit")],
    filter_kinds: Annotated[
        str,
        typer.Option(
            "--filter",
            help="Comma separated change kinds to include (A,M,D,R,C,T)",
        ),
    ] = "A,M",
    max_retries: Annotated[
        Optional[int],
        typer.Option("--max-retries", min=1, help="Total fetch attempts"),
    ] = None,
    backoff_base: Annotated[
        Optional[float],
        typer.Option("--backoff-base", min=0, help="Seconds before the first retry"),
    ] = None,
    backoff_factor: Annotated[
        Optional[float],
        typer.Option("--backoff-factor", min=1, help="Delay multiplier per retry"),
    ] = None,
    fetch_timeout: Annotated[
        Optional[float],
        typer.Option("--fetch-timeout", min=1, help="Seconds before a fetch is killed"),
    ] = None,
    remote: Annotated[
        Optional[str], typer.Option("--remote", help="Remote to fetch from")
    ] = None,
    lock_max_age: Annotated[
        Optional[float],
        typer.Option("--lock-max-age", min=0, help="Seconds before a lock is stale"),
    ] = None,
    show_kind: Annotated[
        bool, typer.Option("--show-kind", help="Print 'path<TAB>kind' lines")
    ] = False,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the full result as JSON")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Print the files changed between OLD_REV and NEW_REV."""
    settings = get_settings()
    configure_logging(debug=verbose or settings.DEBUG)

    overrides = {
        "FETCH_MAX_RETRIES": max_retries,
        "FETCH_BACKOFF_BASE": backoff_base,
        "FETCH_BACKOFF_FACTOR": backoff_factor,
        "FETCH_TIMEOUT": fetch_timeout,
        "GIT_REMOTE_NAME": remote,
        "LOCK_MAX_AGE": lock_max_age,
    }
    settings = settings.model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )

    kinds = parse_filter(filter_kinds)
    resolver = create_ref_resolver_from_settings(settings)
    try:
        result = resolver.resolve_diff(str(repo_path), old_rev, new_rev, kinds)
    except RefResolverError as e:
        logger.error(f"{type(e).__name__}: {e}")
        raise typer.Exit(code=e.exit_code) from e

    output = render(result, show_kind=show_kind, as_json=as_json)
    if output:
        typer.echo(output)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
