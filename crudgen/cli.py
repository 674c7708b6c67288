# File: crudgen/cli.py
"""
CrudGen - Command-Line Interface
=================================

Built with the standard-library ``argparse`` module.

Usage examples::

    # Model, migration, controller and form requests for Post
    crudgen Post --fields "title:string,body:text" \\
        --relations "belongsTo:User:user_id:id"

    # A many-to-many relation also yields a pivot migration (post_tag)
    crudgen Post --fields "title:string" --relations "belongsToMany:Tag:tag_id:post_id"

    # Preview the rendered files without writing anything
    crudgen Post --fields "title:string" --print

    # Plan the target paths; nothing is written
    crudgen Post --fields "title:string" --dry-run -v

    # Let artisan create the files, using custom stubs
    crudgen Post --fields "title:string" --backend artisan --stubs resources/stubs

Exit codes:
    0 — success
    1 — entity name, field spec or relation spec error
    2 — template error
    3 — scaffold backend error
    4 — input/argument/config error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Sequence

from crudgen.exceptions import (
    ConfigError,
    CrudGenError,
    InvalidName,
    MalformedFieldSpec,
    MalformedRelationSpec,
    ScaffoldBackendError,
    TemplateContextError,
    TemplateNotFound,
)
from crudgen.generator import CrudGenerator, GenerationReport, build_config
from crudgen.models import BackendType, GenerationRequest, GenerationResult
from crudgen.utils import write_file

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_SPEC_ERROR: int = 1
EXIT_TEMPLATE_ERROR: int = 2
EXIT_BACKEND_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


def exit_code_for(exc: CrudGenError) -> int:
    """Map an error from the pipeline to the process exit code."""
    if isinstance(exc, (InvalidName, MalformedFieldSpec, MalformedRelationSpec)):
        return EXIT_SPEC_ERROR
    if isinstance(exc, (TemplateNotFound, TemplateContextError)):
        return EXIT_TEMPLATE_ERROR
    if isinstance(exc, ScaffoldBackendError):
        return EXIT_BACKEND_ERROR
    return EXIT_INPUT_ERROR


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``crudgen`` logger.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    ))

    root_logger: logging.Logger = logging.getLogger("crudgen")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from crudgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="crudgen",
        description=(
            "CrudGen — CRUD scaffold generator for Laravel applications.\n\n"
            "Emits an Eloquent model, its migration (plus pivot migrations for "
            "many-to-many relations), a resource controller and store/update "
            "form requests from a compact field and relation spec."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            '  %(prog)s Post --fields "title:string,body:text"\n'
            '  %(prog)s Post --fields "title:string" --relations "belongsTo:User:user_id:id"\n'
            '  %(prog)s Post --fields "title:string" --print\n'
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"CrudGen v{__version__}",
    )

    parser.add_argument(
        "name",
        metavar="NAME",
        help="Entity (model) name, e.g. 'Post' or 'Admin/Post'.",
    )

    # --- Spec ---
    spec_group = parser.add_argument_group("entity spec")
    spec_group.add_argument(
        "--fields",
        default="",
        metavar="SPEC",
        help="Comma-separated 'name:type' pairs, e.g. 'title:string,body:text'.",
    )
    spec_group.add_argument(
        "--relations",
        default=None,
        metavar="SPEC",
        help="Comma-separated 'kind:Related:foreignKey:localKey' entries.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "-c", "--config",
        default=None,
        metavar="FILE",
        help="YAML or JSON configuration file.",
    )
    config_group.add_argument(
        "--project-root",
        default=None,
        metavar="DIR",
        help="Root of the Laravel application (default: current directory).",
    )
    config_group.add_argument(
        "--stubs",
        default=None,
        metavar="DIR",
        help="Directory with custom *.stub templates.",
    )
    config_group.add_argument(
        "--no-builtin-stubs",
        action="store_true",
        default=False,
        help="Require every template to come from --stubs.",
    )
    config_group.add_argument(
        "--backend",
        default=None,
        choices=[b.value for b in BackendType],
        help="How files are created (default: filesystem).",
    )
    config_group.add_argument(
        "--php",
        default=None,
        metavar="PATH",
        help="PHP binary used by the artisan backend.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--strict-relations",
        action="store_true",
        default=False,
        help="Reject unknown relation kinds instead of skipping them.",
    )
    behaviour_group.add_argument(
        "--strict-placeholders",
        action="store_true",
        default=False,
        help="Fail when a template uses a placeholder with no value.",
    )
    behaviour_group.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite existing model, controller and request files.",
    )
    behaviour_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Plan target paths without writing (same as --backend dry_run).",
    )
    behaviour_group.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        default=False,
        help="Print the rendered artifacts to stdout and write nothing.",
    )
    behaviour_group.add_argument(
        "--manifest",
        default=None,
        metavar="FILE",
        help="Write a JSON manifest of the written files.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """CLI values that override the config file; unset flags are left out."""
    overrides: Dict[str, object] = {}

    if args.project_root is not None:
        overrides["project_root"] = args.project_root

    if args.stubs is not None:
        overrides["stubs_dir"] = args.stubs

    if args.no_builtin_stubs:
        overrides["use_builtin_stubs"] = False

    if args.dry_run:
        overrides["backend"] = BackendType.DRY_RUN.value
    elif args.backend is not None:
        overrides["backend"] = args.backend

    if args.php is not None:
        overrides["php_binary"] = args.php

    if args.strict_relations:
        overrides["strict_relations"] = True

    if args.strict_placeholders:
        overrides["strict_placeholders"] = True

    if args.force:
        overrides["overwrite_existing"] = True

    return overrides


# ---------------------------------------------------------------------------
# Run modes
# ---------------------------------------------------------------------------


def _run_print(generator: CrudGenerator, request: GenerationRequest) -> int:
    """Render everything and print it; no backend is involved."""
    try:
        result: GenerationResult = generator.build(request)
    except CrudGenError as exc:
        logger.error("%s", exc)
        return exit_code_for(exc)

    for artifact in result.artifacts:
        print(f"// ---- {artifact.template.value}: {artifact.target_name} ----")
        print(artifact.content)
    return EXIT_SUCCESS


def _run_generation(
    generator: CrudGenerator,
    request: GenerationRequest,
    args: argparse.Namespace,
) -> int:
    """Build and write; returns the exit code."""
    try:
        report: GenerationReport = generator.generate(request)
    except CrudGenError as exc:
        logger.error("%s", exc)
        return exit_code_for(exc)

    if args.manifest and report.manifest is not None:
        manifest_path: Path = Path(args.manifest)
        try:
            write_file(manifest_path, report.manifest.to_json() + "\n")
        except OSError as exc:
            logger.error("Could not write manifest %s: %s", manifest_path, exc)
            return EXIT_INPUT_ERROR
        logger.info("Manifest written to %s.", manifest_path)

    if args.verbose >= 1:
        print(report.summary(), file=sys.stderr)

    if report.failure is not None:
        logger.error("%s", report.failure)
        for record in report.manifest.files if report.manifest else []:
            logger.warning("Already written: %s", record.relative_path)
        return exit_code_for(report.failure)

    if not args.quiet:
        print(report.success_message)
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    try:
        config = build_config(
            Path(args.config) if args.config else None,
            _build_config_overrides(args),
        )
        generator: CrudGenerator = CrudGenerator(config)
    except ConfigError as exc:
        logger.error("%s", exc)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Entity:  %s", args.name)
    logger.info("Root:    %s", config.project_root)
    logger.info("Backend: %s", config.backend.value)

    request: GenerationRequest = GenerationRequest(
        entity_name=args.name,
        field_spec=args.fields,
        relation_spec=args.relations,
    )

    if args.print_only:
        exit_code: int = _run_print(generator, request)
    else:
        exit_code = _run_generation(generator, request, args)

    if exit_code != EXIT_SUCCESS:
        logger.error("crudgen failed with exit code %d.", exit_code)
    sys.exit(exit_code)


main = cli_main


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "exit_code_for",
    "EXIT_SUCCESS",
    "EXIT_SPEC_ERROR",
    "EXIT_TEMPLATE_ERROR",
    "EXIT_BACKEND_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("crudgen.cli loaded.")
