"""CLI interface for Steward.

Subcommands:
- menu: show which add-ons a set of catalogs selects for a Kubernetes version
- remap: print the manifest that would be applied for one add-on
- reconcile: install or upgrade add-ons on the current kubectl cluster
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from steward import __version__
from steward.channels.catalog import AddonSpec, Catalog, parse_addons
from steward.channels.menu import AddonMenu
from steward.channels.reconciler import AddonReconciler
from steward.channels.versions import parse_version, replaces
from steward.cluster.kubectl import KubectlClient
from steward.cluster.sources import FileManifestSource
from steward.config import StewardConfig
from steward.display.tables import create_menu_table, create_reconcile_table
from steward.manifests.assets import NoopAssetRemapper, RegistryMirrorRemapper
from steward.manifests.remap import remap_addon_manifest
from steward.utils.errors import ConfigurationError, StewardError

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str = "info") -> None:
    """Setup logging with Rich handler.

    Args:
        log_level: Logging level (debug, info, warning, error)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=console,
                show_time=False,
                show_path=False,
                rich_tracebacks=True,
            )
        ],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="steward",
        description="Steward - cluster add-on lifecycle management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Steward {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    menu_parser = subparsers.add_parser("menu", help="Show the add-ons selected by catalogs")
    menu_parser.add_argument("catalogs", nargs="+", help="Catalog files")
    menu_parser.add_argument("--kubernetes-version", help="Cluster Kubernetes version")

    remap_parser = subparsers.add_parser("remap", help="Print the remapped manifest of an add-on")
    remap_parser.add_argument("--catalog", required=True, help="Catalog file")
    remap_parser.add_argument("--addon", required=True, help="Add-on name")
    remap_parser.add_argument("--manifest", help="Manifest file (default: from the catalog)")
    remap_parser.add_argument("--kubernetes-version", help="Cluster Kubernetes version")
    remap_parser.add_argument("--registry", help="Mirror registry for container images")

    reconcile_parser = subparsers.add_parser("reconcile", help="Install or upgrade add-ons")
    reconcile_parser.add_argument("catalogs", nargs="+", help="Catalog files")
    reconcile_parser.add_argument("--kubernetes-version", help="Cluster Kubernetes version")
    reconcile_parser.add_argument("--registry", help="Mirror registry for container images")

    return parser


def load_catalog(path: str) -> Catalog:
    """Read and parse a catalog file."""
    catalog_path = Path(path).resolve()
    try:
        data = catalog_path.read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Cannot read catalog {path}: {e}") from e
    return parse_addons(catalog_path.stem, catalog_path.as_uri(), data)


def build_menu(paths: list[str], kubernetes_version: str) -> AddonMenu:
    """Parse every catalog and merge their current add-ons into one menu."""
    version = parse_version(kubernetes_version)
    menu = AddonMenu()
    for path in paths:
        menu.merge_addons(load_catalog(path).get_current(version))
    return menu


def _require_kubernetes_version(args: argparse.Namespace, config: StewardConfig) -> str:
    version = args.kubernetes_version or config.kubernetes_version
    if not version:
        raise ConfigurationError(
            "Kubernetes version is required. "
            "Pass --kubernetes-version or set STEWARD_KUBERNETES_VERSION."
        )
    return version


def _asset_remapper(registry: str | None):
    return RegistryMirrorRemapper(registry) if registry else NoopAssetRemapper()


def run_menu(args: argparse.Namespace, config: StewardConfig) -> int:
    version = _require_kubernetes_version(args, config)
    menu = build_menu(args.catalogs, version)
    Console().print(create_menu_table(menu, title=f"Addons for Kubernetes {version}"))
    return 0


def _select_spec(catalog: Catalog, name: str, kubernetes_version: str | None) -> AddonSpec | None:
    if kubernetes_version:
        addon = catalog.get_current(parse_version(kubernetes_version)).get(name)
        return addon.spec if addon else None

    selected = None
    for spec in catalog.addons:
        if spec.name != name:
            continue
        if selected is None or replaces(selected.versioned_identity, spec.versioned_identity):
            selected = spec
    return selected


def run_remap(args: argparse.Namespace, config: StewardConfig) -> int:
    catalog = load_catalog(args.catalog)
    spec = _select_spec(
        catalog, args.addon, args.kubernetes_version or config.kubernetes_version
    )
    if spec is None:
        raise ConfigurationError(f"Addon {args.addon!r} not found in {args.catalog}")

    source = FileManifestSource()
    manifest = source.read(args.manifest or spec.manifest_location)
    remapped = remap_addon_manifest(
        spec, config.cluster_context(), _asset_remapper(args.registry), manifest
    )
    sys.stdout.write(remapped.decode("utf-8"))
    return 0


def run_reconcile(args: argparse.Namespace, config: StewardConfig) -> int:
    version = _require_kubernetes_version(args, config)
    menu = build_menu(args.catalogs, version)

    client = KubectlClient(config.kubeconfig, timeout=config.kubectl_timeout)
    reconciler = AddonReconciler(
        config, client, FileManifestSource(), _asset_remapper(args.registry)
    )
    result = reconciler.reconcile(menu)

    console.print(create_reconcile_table(result))
    console.print(result["message"])
    return 0 if result["success"] else 1


_COMMANDS = {
    "menu": run_menu,
    "remap": run_remap,
    "reconcile": run_reconcile,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = StewardConfig()
        setup_logging("debug" if args.verbose else config.log_level)
        config.validate()
        return _COMMANDS[args.command](args, config)
    except StewardError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
