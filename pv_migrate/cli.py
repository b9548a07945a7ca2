"""Command line entry point for pv-migrate."""

import argparse
import asyncio
import sys
from importlib.metadata import PackageNotFoundError, version

from pv_migrate.core.cluster import ClusterResolver, resolve_locator
from pv_migrate.core.config_loader import PVMigrateConfig, load_config
from pv_migrate.core.engine import MigrationEngine
from pv_migrate.core.exceptions import ConfigurationError, MigrationFailedError
from pv_migrate.core.logging_config import get_logger, setup_logging
from pv_migrate.core.strategies import default_registry
from pv_migrate.models.request import MigrationRequest, TransferOptions

EXIT_OK = 0
EXIT_MIGRATION_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_INTERRUPTED = 130


def _package_version() -> str:
    try:
        return version("pv-migrate")
    except PackageNotFoundError:
        return "unknown"


def _split_strategies(values: list[str] | None) -> tuple[str, ...]:
    """Accept both ``-s a,b`` and ``-s a -s b``."""
    names: list[str] = []
    for value in values or []:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return tuple(names)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pv-migrate",
        description="Migrate data from one Kubernetes PersistentVolumeClaim to another",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: log_level from settings, PV_MIGRATE_LOG_LEVEL or INFO)",
    )
    parser.add_argument("--log-file", default=None, help="Also write JSON logs to this file")
    parser.add_argument("--config", default=None, help="Configuration file path")

    subparsers = parser.add_subparsers(dest="command", required=True)
    migrate = subparsers.add_parser(
        "migrate",
        aliases=["m"],
        help="Migrate data from the source pvc to the destination pvc",
    )
    migrate.add_argument("source", metavar="SOURCE_PVC", help="Name of the source pvc")
    migrate.add_argument("dest", metavar="DESTINATION_PVC", help="Name of the destination pvc")
    migrate.add_argument(
        "-k", "--source-kubeconfig", default="",
        help="Path of the kubeconfig file of the source pvc (default: ~/.kube/config or KUBECONFIG)",
    )
    migrate.add_argument(
        "-c", "--source-context", default="",
        help="Context in the kubeconfig file of the source pvc (default: current context)",
    )
    migrate.add_argument(
        "-n", "--source-namespace", default="",
        help="Namespace of the source pvc (default: namespace of the source context)",
    )
    migrate.add_argument(
        "-K", "--dest-kubeconfig", default="",
        help="Path of the kubeconfig file of the destination pvc (default: ~/.kube/config or KUBECONFIG)",
    )
    migrate.add_argument(
        "-C", "--dest-context", default="",
        help="Context in the kubeconfig file of the destination pvc (default: current context)",
    )
    migrate.add_argument(
        "-N", "--dest-namespace", default="",
        help="Namespace of the destination pvc (default: namespace of the destination context)",
    )
    migrate.add_argument(
        "-d", "--dest-delete-extraneous-files", action="store_true",
        help="Delete extraneous files on the destination by using rsync's '--delete' flag",
    )
    migrate.add_argument(
        "-i", "--ignore-mounted", action="store_true",
        help="Do not fail if the source or destination PVC is mounted",
    )
    migrate.add_argument(
        "-s", "--override-strategies", action="append", default=None,
        help="Override the default list of strategies and their order by priority "
        "(comma separated or repeated; default: all built-in strategies in natural order)",
    )
    migrate.add_argument("-r", "--rsync-image", default=None, help="Image to use for running rsync")
    migrate.add_argument("-S", "--sshd-image", default=None, help="Image to use for running sshd server")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def build_request(args: argparse.Namespace, rsync_image: str, sshd_image: str) -> MigrationRequest:
    """Resolve kubeconfig defaults and assemble the migration request.

    Raises:
        ConfigurationError: If a kubeconfig or context cannot be resolved
    """
    source = resolve_locator(args.source_kubeconfig, args.source_context, args.source_namespace, args.source)
    dest = resolve_locator(args.dest_kubeconfig, args.dest_context, args.dest_namespace, args.dest)
    return MigrationRequest(
        source=source,
        dest=dest,
        options=TransferOptions(
            delete_extraneous=args.dest_delete_extraneous_files,
            ignore_mounted=args.ignore_mounted,
        ),
        strategies=_split_strategies(args.override_strategies),
        rsync_image=args.rsync_image or rsync_image,
        sshd_image=args.sshd_image or sshd_image,
    )


def run_migrate(args: argparse.Namespace, config: PVMigrateConfig) -> int:
    """Execute the migrate command and return the process exit code."""
    logger = get_logger()

    try:
        request = build_request(args, config.images.rsync, config.images.sshd)
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return EXIT_CONFIGURATION_ERROR

    logger = logger.bind(**request.log_fields())
    if request.options.delete_extraneous:
        logger.info("Extraneous files will be deleted from the destination")

    registry = default_registry()
    logger.info(
        f"Engine initialized with {len(registry)} total strategies",
        strategies=" ".join(registry.names()),
    )
    engine = MigrationEngine(registry, ClusterResolver(), settings=config.settings)

    try:
        result = asyncio.run(engine.run(request))
    except KeyboardInterrupt:
        logger.warning("Migration interrupted")
        return EXIT_INTERRUPTED
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return EXIT_CONFIGURATION_ERROR
    except MigrationFailedError as e:
        logger.error("Migration failed", error=str(e))
        return EXIT_MIGRATION_FAILED

    logger.info("Migration succeeded", strategy=result.strategy, stats=result.succeeded.stats)
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        setup_logging(log_level=args.log_level, log_file=args.log_file)
        get_logger().error("Invalid configuration", error=str(e))
        sys.exit(EXIT_CONFIGURATION_ERROR)

    setup_logging(log_level=args.log_level or config.settings.log_level, log_file=args.log_file)
    sys.exit(run_migrate(args, config))


if __name__ == "__main__":
    main()
