# cli.py
from __future__ import annotations

import sys
from functools import wraps

import click

from .config import Settings
from .errors import APIError, ConfigError, DashciError, RenderError, ToolError
from .pipeline import run_build, run_cleanup, run_diff
from .ui.console import Console, get_console, set_console


def _report(ctx: click.Context, e: Exception) -> None:
    """Print a structured error for a failed command."""
    console = get_console()

    if isinstance(e, ConfigError):
        console.print_error(
            "Configuration error",
            e.message,
            details=e.missing,
            suggestion="These are normally set by the CI pipeline; export them to run locally.",
        )
    elif isinstance(e, ToolError):
        details = [f"command: {' '.join(e.command)}"] if e.command else []
        if e.exit_code is not None:
            details.append(f"exit code: {e.exit_code}")
        if e.stderr:
            details += e.stderr.strip().splitlines()
        console.print_error(
            f"{e.tool} failed",
            e.message,
            details=details,
            suggestion=f"Check that {e.tool} is installed and on PATH." if e.exit_code is None else None,
        )
    elif isinstance(e, APIError):
        console.print_error(
            "Grafana API request failed",
            str(e),
            details=[e.body] if e.body else None,
        )
    elif isinstance(e, RenderError):
        console.print_error("Render failed", str(e))
    else:
        console.print_exception(e)
        return

    if ctx.obj.get("debug", False):
        import traceback
        traceback.print_exc()


def handle_errors(fn):
    """Single exit point: components raise, commands turn errors into exit codes."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        try:
            return fn(*args, **kwargs)
        except KeyboardInterrupt:
            get_console().print_info("\nInterrupted by user")
            sys.exit(130)
        except (DashciError, OSError) as e:
            _report(ctx, e)
            sys.exit(1)

    return wrapper


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """dashci: render and deploy Grafana dashboards from CI."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@handle_errors
def diff():
    """Write the files changed on this branch to the change set file."""
    settings = Settings.from_env()
    run_diff(settings)


@cli.command()
@click.option("--project", default=None, help="Set project name for long lived branches.")
@click.option("--deploy", is_flag=True, default=False, help="Deploy rendered dashboards to grafana.")
@handle_errors
def build(project, deploy):
    """Render changed dashboards into dist/ and optionally deploy them."""
    console = get_console()
    console.print_info("Pipeline build script started")
    settings = Settings.from_env()
    run_build(settings, project=project, deploy=deploy)


@cli.command()
@handle_errors
def cleanup():
    """Delete the dev folder of a merged short-lived branch."""
    settings = Settings.from_env()
    run_cleanup(settings)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
