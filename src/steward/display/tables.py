"""Table rendering utilities for Steward."""

from typing import Any

from rich.table import Table

from steward.channels.menu import AddonMenu


def create_menu_table(menu: AddonMenu, title: str = "Addons") -> Table:
    """Create a table listing the winning add-ons of a menu.

    Args:
        menu: Add-on menu

    Returns:
        Rich Table with one row per add-on
    """
    table = Table(title=title)

    table.add_column("Name", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Id", style="white")
    table.add_column("Channel", style="white")
    table.add_column("Rolling Update", style="yellow")
    table.add_column("PKI", style="white")

    for addon in menu.sorted_addons():
        spec = addon.spec
        table.add_row(
            addon.name,
            spec.version,
            spec.variant_id or "-",
            addon.channel_name,
            spec.rolling_update_scope.value,
            "yes" if spec.needs_pki else "no",
        )

    return table


def create_reconcile_table(result: dict[str, Any]) -> Table:
    """Create a table for reconcile results.

    Args:
        result: Result dict from AddonReconciler.reconcile

    Returns:
        Rich Table with one row per add-on
    """
    table = Table(title="Reconcile")

    table.add_column("Addon", style="cyan")
    table.add_column("Status", style="white")
    table.add_column("Details", style="white")

    for name, addon_result in sorted(result.get("results", {}).items()):
        if addon_result.get("success"):
            status = f"[green]✓ {addon_result.get('action', 'ok')}[/green]"
        else:
            status = "[red]✗ failed[/red]"

        details = addon_result.get("message", "")
        if addon_result.get("nodes_marked"):
            details += f" ({len(addon_result['nodes_marked'])} node(s) marked)"
        table.add_row(name, status, details)

    return table
