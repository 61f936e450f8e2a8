"""
CLI entry point for the Islandora REST ingester.

Provides command-line interface for ingesting object packages:
    - Argument parsing
    - Environment variable support
    - Console output formatting
    - Exit codes for automation
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError as ConfigValidationError

from islandora_ingest.ingestion.ingesters import IngesterRegistry
from islandora_ingest.ingestion.pipeline import (
    check_repository,
    discover_object_dirs,
    ingest_batch,
    load_plugins,
)
from islandora_ingest.ingestion.rest_client import IslandoraRestClient
from islandora_ingest.models import ConfigurationError, IngestConfig, IngestContext
from islandora_ingest.models.config import (
    DEFAULT_CHECKSUM_TYPE,
    DEFAULT_ENDPOINT,
    DEFAULT_LOG_PATH,
    DEFAULT_RELATIONSHIP,
)
from islandora_ingest.utils.logger import setup_logging
from islandora_ingest.utils.validators import ValidationError

logger = logging.getLogger("islandora_ingest.cli")


# Exit codes
EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_REPOSITORY_ERROR = 2
EXIT_INGESTION_ERROR = 3


# Environment variables
ENV_ENDPOINT = "ISLANDORA_REST_ENDPOINT"
ENV_USER = "ISLANDORA_REST_USER"
ENV_TOKEN = "ISLANDORA_REST_TOKEN"

DEFAULT_LOG_LEVEL = "INFO"


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list (default: sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="islandora-ingest",
        description="Ingest object packages into Islandora via its REST interface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ingest large images into a collection
  islandora-ingest /data/images -m islandora:sp_large_image_cmodel \\
      -p islandora:images -n islandora -o admin -u admin -t SECRET

  # Ingest books; each book directory holds MODS.xml and one directory per page
  islandora-ingest /data/books -m islandora:bookCModel -p islandora:bookCollection \\
      -n books -o admin -u admin -t SECRET

  # Let each directory's cmodel.txt or file extension pick the content model
  islandora-ingest /data/mixed -p islandora:mixed -n mixed -o admin

Environment Variables:
  ISLANDORA_REST_ENDPOINT  REST endpoint (default: http://localhost/islandora/rest/v1)
  ISLANDORA_REST_USER      REST user name
  ISLANDORA_REST_TOKEN     REST authentication token

Exit Codes:
  0  Success - every object ingested without errors
  1  Validation error - invalid arguments, content model or input directory
  2  Repository error - endpoint unreachable or parent object inaccessible
  3  Ingestion error - the run finished but there were errors
        """,
    )

    parser.add_argument(
        "input_dir",
        type=str,
        help="Absolute or relative path to a directory containing import packages",
    )
    parser.add_argument(
        "-m",
        "--cmodel",
        help="PID of the objects' content model (default: per directory, "
        "from cmodel.txt or the content file extension)",
    )
    parser.add_argument(
        "-p",
        "--parent",
        required=True,
        help="PID of the objects' parent collection, newspaper, etc.",
    )
    parser.add_argument(
        "-n",
        "--namespace",
        help="Objects' namespace. A full PID is used as-is. Without this option "
        "each object directory name must be the object's PID.",
    )
    parser.add_argument("-o", "--owner", required=True, help="Objects' owner")
    parser.add_argument(
        "-r",
        "--relationship",
        default=DEFAULT_RELATIONSHIP,
        help=f"Predicate relating objects to their parent (default: {DEFAULT_RELATIONSHIP})",
    )
    parser.add_argument(
        "-c",
        "--checksum_type",
        default=DEFAULT_CHECKSUM_TYPE,
        help='Checksum type for datastreams, or "none" (default: SHA-1)',
    )
    parser.add_argument(
        "-e",
        "--endpoint",
        default=os.environ.get(ENV_ENDPOINT, DEFAULT_ENDPOINT),
        help=f"Fully qualified REST endpoint (default: {DEFAULT_ENDPOINT})",
    )
    parser.add_argument(
        "-u", "--user", default=os.environ.get(ENV_USER), help="REST user name"
    )
    parser.add_argument(
        "-t",
        "--token",
        default=os.environ.get(ENV_TOKEN),
        help="REST authentication token",
    )
    parser.add_argument(
        "-l",
        "--log",
        default=str(DEFAULT_LOG_PATH),
        help=f"Path to the log (default: {DEFAULT_LOG_PATH})",
    )
    parser.add_argument(
        "-s",
        "--state",
        default="Active",
        help="Object state: Active, Inactive or Deleted (default: Active)",
    )
    parser.add_argument(
        "--plugins",
        default="",
        help="Comma-separated 'module:function' callables run after each object",
    )
    parser.add_argument(
        "--delete_input",
        action="store_true",
        help="Delete each input directory after it is ingested successfully",
    )
    parser.add_argument(
        "--max_file_size",
        type=float,
        default=None,
        help="Skip content files larger than this many megabytes",
    )
    parser.add_argument(
        "--classmap",
        default=None,
        help="JSON file mapping content models to 'module:Class' ingesters",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=DEFAULT_LOG_LEVEL,
        help=f"Console logging level (default: {DEFAULT_LOG_LEVEL})",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> IngestConfig:
    """
    Build the validated run configuration from parsed arguments.

    Raises:
        ValidationError: If user or token is missing
        pydantic.ValidationError: If any option is invalid
    """
    if not args.user or not args.token:
        raise ValidationError(
            f"REST user and token are required (-u/-t or {ENV_USER}/{ENV_TOKEN})"
        )

    plugins = [p.strip() for p in args.plugins.split(",") if p.strip()]

    return IngestConfig(
        input_dir=Path(args.input_dir),
        content_model=args.cmodel,
        parent=args.parent,
        namespace=args.namespace,
        owner=args.owner,
        relationship=args.relationship,
        checksum_type=args.checksum_type,
        endpoint=args.endpoint,
        user=args.user,
        token=args.token,
        log=Path(args.log),
        state=args.state,
        plugins=plugins,
        delete_input=args.delete_input,
        max_file_size=args.max_file_size,
        classmap=Path(args.classmap) if args.classmap else None,
    )


def print_banner(config: IngestConfig) -> None:
    """
    Print CLI banner with configuration summary.

    Args:
        config: Run configuration
    """
    banner = f"""
{"=" * 70}
  Islandora REST Ingest
{"=" * 70}
  Input Directory:  {config.input_dir}
  Endpoint:         {config.endpoint}
  Content Model:    {config.content_model or "(per directory)"}
  Parent:           {config.parent} ({config.relationship})
  Namespace:        {config.namespace or "(from directory names)"}
  Checksum:         {config.checksum_type}
  Delete Input:     {"Yes" if config.delete_input else "No"}
  Log:              {config.log}
{"=" * 70}
"""
    print(banner)


def build_context(config: IngestConfig, client: IslandoraRestClient) -> IngestContext:
    """
    Assemble the run context: registry, classmap overrides and plugins.

    Raises:
        ConfigurationError: If the classmap, a plugin or the content model
            cannot be resolved
    """
    registry = IngesterRegistry()
    if config.classmap:
        registry.load_classmap(config.classmap)

    context = IngestContext(
        config=config,
        client=client,
        logger=logging.getLogger("islandora_ingest.ingest"),
        registry=registry,
        plugins=load_plugins(config.plugins),
    )

    if config.content_model and registry.lookup(config.content_model) is None:
        raise ConfigurationError(
            f"Sorry, the content model {config.content_model} is not recognized."
        )

    return context


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0=success, 1=validation error, 2=repository error, 3=ingestion error)
    """
    args = parse_arguments(argv)

    try:
        config = build_config(args)
    except (ValidationError, ConfigValidationError) as e:
        print(f"[X] Invalid configuration: {e}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    setup_logging(log_level=args.log_level, log_file=config.log)
    logger.info(f"Ingest (endpoint {config.endpoint}) started")

    try:
        print_banner(config)

        try:
            object_dirs = discover_object_dirs(config.input_dir)
        except ValidationError as e:
            logger.error(f"[X] Error: {e}")
            return EXIT_VALIDATION_ERROR

        if not object_dirs:
            logger.warning("[!] No object directories found in input directory.")
            return EXIT_VALIDATION_ERROR

        logger.info(f"Found {len(object_dirs)} object directories")

        with IslandoraRestClient(
            config.endpoint, config.user, config.token, timeout=config.timeout
        ) as client:
            try:
                context = build_context(config, client)
            except ConfigurationError as e:
                logger.error(f"[X] {e}")
                return EXIT_VALIDATION_ERROR

            try:
                check_repository(context)
            except ConfigurationError as e:
                logger.error(f"[X] Repository Error: {e}")
                return EXIT_REPOSITORY_ERROR

            ingester = None
            if config.content_model:
                ingester = context.registry.create(context, config.content_model)

            report = ingest_batch(context, object_dirs, ingester)

        logger.info(report.summary())
        logger.info(f"Ingest finished (endpoint {config.endpoint})")

        if report.had_errors or report.failed > 0:
            print(f"There were errors during ingest; see {config.log}", file=sys.stderr)
            return EXIT_INGESTION_ERROR
        return EXIT_SUCCESS

    except KeyboardInterrupt:
        logger.warning("[!] Interrupted by user")
        return EXIT_INGESTION_ERROR

    except Exception as e:
        logger.error(f"[X] Unexpected Error: {e}", exc_info=True)
        return EXIT_INGESTION_ERROR


if __name__ == "__main__":
    sys.exit(main())
