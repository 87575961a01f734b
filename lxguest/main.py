"""
lxguest — CLI entrypoint.

Usage:
    lxguest --help
    lxguest detect /zones/<uuid>/root
    lxguest plan /zones/<uuid>/root
    lxguest install /zones/<uuid>/root
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from lxguest import __version__
from lxguest.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)

_GUEST_ROOT = click.Path(exists=False, file_okay=False, path_type=Path)

_ASSETS_OPTION = click.option(
    "--assets",
    "assets_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Asset bundle directory (default: from config, else bundled).",
)


@click.group()
@click.version_option(version=__version__, prog_name="lxguest")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Path to lxguest.yml (default: $LXG_CONFIG or /etc/lxguest.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: Path | None,
) -> None:
    """lxguest — provision guest-agent tooling into lx zone roots."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )


@cli.command()
@click.argument("guest_root", type=_GUEST_ROOT)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def detect(guest_root: Path, as_json: bool) -> None:
    """Detect the Linux distribution installed in GUEST_ROOT."""
    from lxguest.core.models.distro import Distribution
    from lxguest.core.services.distro import detect as detect_distro

    distribution = detect_distro(guest_root)

    if as_json:
        click.echo(json.dumps({"guest_root": str(guest_root), "distribution": distribution.value}))
    elif distribution is Distribution.UNKNOWN:
        click.secho(f"❌ No supported distribution found in {guest_root}", fg="red")
    else:
        click.secho(f"🐧 {distribution.value}", fg="cyan", bold=True)

    if distribution is Distribution.UNKNOWN:
        sys.exit(1)


@cli.command()
@click.argument("guest_root", type=_GUEST_ROOT)
@_ASSETS_OPTION
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, guest_root: Path, assets_dir: Path | None, as_json: bool) -> None:
    """Show what `install` would do to GUEST_ROOT."""
    from lxguest.core.use_cases.provision import run_plan

    result = run_plan(
        guest_root,
        config_path=ctx.obj.get("config_path"),
        assets_dir=assets_dir,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📋 Plan for {guest_root} [{result.distribution}]", fg="cyan", bold=True)
    for action in result.actions or []:
        params = action.params
        detail = params.get("src") or params.get("target") or ""
        arrow = f" ← {detail}" if detail else ""
        mode = f" ({params['mode']:o})" if "mode" in params else ""
        click.echo(f"   • {params['operation']:<9} {params['dst']}{mode}{arrow}")
    click.echo()


@cli.command()
@click.argument("guest_root", type=_GUEST_ROOT)
@_ASSETS_OPTION
@click.option("--dry-run", is_flag=True, help="Validate but change nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    guest_root: Path,
    assets_dir: Path | None,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Install guest-agent tooling into GUEST_ROOT.

    Examples:

        lxguest install /zones/3f2a/root

        lxguest install --dry-run /zones/3f2a/root
    """
    from lxguest.core.use_cases.provision import run_provision

    result = run_provision(
        guest_root,
        config_path=ctx.obj.get("config_path"),
        assets_dir=assets_dir,
        dry_run=dry_run,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    report = result.report
    quiet = ctx.obj.get("quiet", False)

    if report is not None and not quiet:
        mode_label = "[dry-run] " if dry_run else ""
        distro_label = f" [{report.distribution}]" if report.distribution else ""
        click.secho(f"\n⚡ {mode_label}install → {guest_root}{distro_label}", fg="cyan", bold=True)
        for receipt in report.receipts:
            if receipt.ok:
                click.secho("   ✓ ", fg="green", nl=False)
                click.echo(receipt.action_id)
                if ctx.obj.get("verbose") and receipt.output:
                    click.echo(f"     │ {receipt.output}")
            elif receipt.failed:
                click.secho("   ✗ ", fg="red", nl=False)
                click.echo(receipt.action_id)
            else:
                click.secho("   ⊘ ", fg="yellow", nl=False)
                click.echo(f"{receipt.action_id} ({receipt.output})")
        click.echo()

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert report is not None  # set whenever the run got past config loading
    if not quiet:
        click.secho(f"   Result: {report.succeeded}/{report.total} applied", fg="green", bold=True)
        click.echo()


if __name__ == "__main__":
    cli()
