# src/main.py — v1
"""CLI entry point — run, list, inspect, fetch, config commands.

Usage:
    iacdiagram run <project> [--step S] [--llm | --no-llm] [--values FILE]
    iacdiagram list [--all]
    iacdiagram inspect <project> [--run ID] [--step S] [--json]
    iacdiagram fetch <project> [--repo URL] [--file PATH] [--helm-path DIR]
    iacdiagram config set-key <key> | show | clear | path
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from iacdiagram.config.settings import ConfigurationError, Settings, load_settings
from iacdiagram.logging.logger import setup_logging
from iacdiagram.storage.models import STEP_ORDER
from iacdiagram.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load_settings(args)
    except (ConfigurationError, ValidationError) as exc:
        setup_logging("INFO")
        logger.error("Invalid configuration: %s", exc)
        return 1

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _load_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.projects_file is not None:
        overrides["projects_file"] = args.projects_file
    return load_settings(**overrides)


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="iacdiagram",
        description=f"iacdiagram v{__version__} — Infrastructure-as-code to architecture diagrams",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--data-dir", type=Path, default=None,
        help="Data directory (default: $DATA_DIR or ./iac-data)",
    )
    parser.add_argument(
        "--projects-file", type=Path, default=None,
        help="Project registry file (default: ./projects.json)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    p_run = subparsers.add_parser("run", help="Run the pipeline for a project")
    p_run.add_argument("project", help="Project ID")
    p_run.add_argument(
        "-s", "--step", choices=STEP_ORDER, default=None,
        help="Run only up to this step (default: full pipeline)",
    )
    p_run.add_argument(
        "--llm", action=argparse.BooleanOptionalAction, default=None,
        help="Force LLM enhancement on or off (default: on when an API key is configured)",
    )
    p_run.add_argument(
        "--values", default=None,
        help="Helm values override file (relative to the project sources); disables variant fan-out",
    )
    p_run.add_argument(
        "--model", default=None,
        help="LLM model for enhancement",
    )
    p_run.add_argument(
        "--parallel", type=int, default=None,
        help="Run up to N variants concurrently (default: 1)",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- list ---
    p_list = subparsers.add_parser("list", help="List projects and their runs")
    p_list.add_argument(
        "-a", "--all", action="store_true",
        help="Include registered projects without local data",
    )
    p_list.set_defaults(func=_cmd_list)

    # --- inspect ---
    p_inspect = subparsers.add_parser("inspect", help="Inspect a pipeline run")
    p_inspect.add_argument("project", help="Project ID")
    p_inspect.add_argument("-r", "--run", dest="run_id", default=None, help="Run ID (default: latest)")
    p_inspect.add_argument("-s", "--step", choices=STEP_ORDER, default=None, help="Show step details")
    p_inspect.add_argument("--json", action="store_true", help="Print the raw run manifest")
    p_inspect.set_defaults(func=_cmd_inspect)

    # --- fetch ---
    p_fetch = subparsers.add_parser("fetch", help="Fetch IaC files for a project")
    p_fetch.add_argument("project", help="Project ID")
    p_fetch.add_argument("-r", "--repo", default=None, help="Override repository URL")
    p_fetch.add_argument("-f", "--file", default=None, help="Fetch a single file path")
    p_fetch.add_argument(
        "--helm-path", type=Path, default=None,
        help="Copy a Helm chart from a local directory",
    )
    p_fetch.set_defaults(func=_cmd_fetch)

    # --- config ---
    p_config = subparsers.add_parser("config", help="Manage the stored API key")
    config_sub = p_config.add_subparsers(dest="config_command", required=True)
    p_set = config_sub.add_parser("set-key", help="Store an Anthropic API key")
    p_set.add_argument("key", help="API key")
    config_sub.add_parser("show", help="Show the active configuration")
    config_sub.add_parser("clear", help="Remove the stored API key")
    config_sub.add_parser("path", help="Print the config file path")
    p_config.set_defaults(func=_cmd_config)

    return parser


def _use_color() -> bool:
    return sys.stdout.isatty()


async def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the pipeline, once per discovered variant."""
    from iacdiagram.cli_output import format_duration, format_run_summary
    from iacdiagram.config.credentials import get_credential
    from iacdiagram.config.projects import load_registry, resolve_project
    from iacdiagram.pipeline.collaborators import create_collaborators
    from iacdiagram.pipeline.orchestrator import PipelineOrchestrator
    from iacdiagram.pipeline.state import PipelineOptions
    from iacdiagram.storage.run_manager import RunStore

    if args.llm is None:
        enhance_mode = settings.enhance_mode
    else:
        enhance_mode = "always" if args.llm else "never"

    project = resolve_project(load_registry(settings.projects_file), args.project)
    options = PipelineOptions(
        target_step=args.step,
        enhance_mode=enhance_mode,
        credential=get_credential(settings),
        llm_model=args.model or settings.llm_model,
        values_file=args.values,
        max_parallel_variants=args.parallel or settings.max_parallel_variants,
    )

    store = RunStore(settings.data_dir)
    orchestrator = PipelineOrchestrator(store, create_collaborators(store, settings))
    result = await orchestrator.run(project, options)

    color = _use_color()
    for outcome in result.outcomes:
        print()
        if outcome.run is None:
            print(f"Run {outcome.label}: could not start: {outcome.error}")
            continue
        print(format_run_summary(outcome.run, color))
        print(f"\nRun directory: {store.run_path(project.id, outcome.run.id)}")

    if len(result.outcomes) > 1:
        passed = sum(1 for o in result.outcomes if o.success)
        print(f"\n{passed}/{len(result.outcomes)} variants succeeded "
              f"in {format_duration(result.duration_ms)}")
    return result.exit_code


async def _cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    """List registered projects and projects with local data."""
    from iacdiagram.cli_output import GREEN, GREY, RESET, format_status
    from iacdiagram.config.projects import load_registry
    from iacdiagram.storage.run_manager import RunStore

    registry = load_registry(settings.projects_file)
    store = RunStore(settings.data_dir)
    with_data = set(await store.list_projects())
    all_ids = sorted(set(registry.project_ids) | with_data)

    if not all_ids:
        print("No projects found.")
        print('\nUse "iacdiagram fetch <project> --repo <url>" to add a project.')
        return 0

    color = _use_color()
    print("Projects:\n")
    for project_id in all_ids:
        has_data = project_id in with_data
        if not args.all and not has_data:
            continue
        entry = registry.get(project_id)
        marker = "●" if has_data else "○"
        if color:
            marker = f"{GREEN if has_data else GREY}{marker}{RESET}"
        name = entry.display_name if entry else project_id
        print(f"{marker} {name} ({project_id})")
        if entry and entry.repo:
            print(f"   Repo: {entry.repo}")
        if has_data:
            runs = await store.list_runs(project_id)
            print(f"   Runs: {len(runs)}")
            if runs:
                latest = runs[0]
                print(f"   Latest: {latest.id} ({format_status(latest.status, color)})")
        print()
    return 0


async def _cmd_inspect(args: argparse.Namespace, settings: Settings) -> int:
    """Show a run manifest and a summary of its artifacts."""
    from iacdiagram.cli_output import format_graph_summary, format_run_summary
    from iacdiagram.storage.reader import find_latest_run, load_diagram, load_graph, load_layout
    from iacdiagram.storage.run_manager import RunStore

    store = RunStore(settings.data_dir)
    try:
        store.require_safe("Project", args.project)
        if args.run_id:
            store.require_safe("Run", args.run_id)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 1

    if args.run_id:
        run = await store.read_manifest(args.project, args.run_id)
        if run is None:
            logger.error("Run not found: %s", args.run_id)
            return 1
    else:
        run = await find_latest_run(store, args.project)
        if run is None:
            logger.error("No runs found for project: %s", args.project)
            return 1

    if args.json:
        print(run.model_dump_json(indent=2))
        return 0

    print(format_run_summary(run, _use_color()))
    print(f"\nRun directory: {store.run_path(run.project, run.id)}")

    if args.step:
        result = run.get_step(args.step)
        if result is None:
            logger.error("Step '%s' not found in run %s", args.step, run.id)
            return 1
        print(f"\n--- {args.step} details ---\n")
        if args.step in ("parse", "enhance"):
            graph = await load_graph(store, run.project, run.id, args.step)
            if graph is not None:
                print(format_graph_summary(graph))
        elif args.step == "layout":
            layout_graph = await load_layout(store, run.project, run.id)
            if layout_graph is not None:
                print(f"Nodes: {len(layout_graph.nodes)}")
                print(f"Layers: {layout_graph.layers}")
                print(f"Size: {layout_graph.width:.0f} x {layout_graph.height:.0f}")
        else:
            diagram = await load_diagram(store, run.project, run.id)
            if diagram is not None:
                print(f"Elements: {len(diagram.elements)}")
        return 0

    graph_step = next(
        (s for s in ("enhance", "parse")
         if (r := run.get_step(s)) is not None and r.status == "completed"),
        None,
    )
    if graph_step is not None:
        graph = await load_graph(store, run.project, run.id, graph_step)
        if graph is not None:
            print("\n--- Graph Summary ---\n")
            print(format_graph_summary(graph))
    return 0


async def _cmd_fetch(args: argparse.Namespace, settings: Settings) -> int:
    """Fetch source files from GitHub or a local Helm chart directory."""
    from iacdiagram.config.projects import load_registry, resolve_project
    from iacdiagram.sources.fetcher import FetchError, SourceFetcher
    from iacdiagram.storage.run_manager import RunStore

    project = resolve_project(load_registry(settings.projects_file), args.project)
    store = RunStore(settings.data_dir)
    fetcher = SourceFetcher(store)

    try:
        if args.helm_path is not None:
            logger.info("Copying Helm chart from %s", args.helm_path)
            report = await fetcher.fetch_helm_path(project, args.helm_path)
        else:
            report = await fetcher.fetch_github(project, repo=args.repo, file=args.file)
    except FetchError as exc:
        logger.error("Fetch failed: %s", exc)
        return 1

    for name in report.saved:
        print(f"  ✓ Saved {name}")
    for path, error in report.failed.items():
        print(f"  ✗ {path}: {error}")
    print(f"\nSources: {store.source_path(project.id)}")
    return 0 if report.success else 1


async def _cmd_config(args: argparse.Namespace, settings: Settings) -> int:
    """Manage the stored Anthropic API key."""
    from iacdiagram.config.credentials import (
        clear_api_key,
        credential_source,
        get_credential,
        mask_api_key,
        set_api_key,
    )

    path = settings.resolved_user_config_path

    if args.config_command == "path":
        print(path)
        return 0

    if args.config_command == "set-key":
        set_api_key(path, args.key)
        print(f"API key saved to {path}")
        return 0

    if args.config_command == "clear":
        removed = clear_api_key(path)
        print("API key cleared" if removed else "No stored API key")
        if settings.anthropic_api_key:
            print("\nNote: ANTHROPIC_API_KEY environment variable is still set")
        return 0

    print(f"Config file: {path}\n")
    key = get_credential(settings)
    if key is None:
        print("Anthropic API key: not set")
        print("\nTo enable LLM enhancement, run:")
        print("  iacdiagram config set-key <your-anthropic-api-key>")
    else:
        print(f"Anthropic API key ({credential_source(settings)}): {mask_api_key(key)}")
    print(f"Enhancement mode: {settings.enhance_mode}")
    print(f"Model: {settings.llm_model}")
    print(f"Data directory: {settings.data_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
