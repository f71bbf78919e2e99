"""Unit tests for AddonMenu."""

from steward.channels.menu import AddonMenu


def menu_of(*addons) -> AddonMenu:
    return AddonMenu({addon.name: addon for addon in addons})


class TestMergeAddons:
    """Test AddonMenu.merge_addons."""

    def test_newer_version_wins(self, make_addon):
        """Test a newer version from the other menu replaces ours."""
        left = menu_of(make_addon("a", "1.0.0", variant_id="k8s-1.18"))
        newer = make_addon("a", "1.0.1", variant_id="k8s-1.18")

        left.merge_addons(menu_of(newer))

        assert left.get("a") == newer

    def test_older_version_loses(self, make_addon):
        """Test an older version from the other menu is ignored."""
        current = make_addon("a", "1.0.1", variant_id="k8s-1.18")
        left = menu_of(current)

        left.merge_addons(menu_of(make_addon("a", "1.0.0", variant_id="k8s-1.18")))

        assert left.get("a") == current

    def test_equal_version_keeps_occupant(self, make_addon):
        """Test ties keep the existing add-on even when id and hash differ."""
        current = make_addon("a", "1.0.0", variant_id="x", channel_name="left")
        left = menu_of(current)

        left.merge_addons(
            menu_of(
                make_addon(
                    "a", "1.0.0", variant_id="y", manifest_hash="h", channel_name="right"
                )
            )
        )

        assert left.get("a") == current

    def test_variant_id_ignored(self, make_addon):
        """Test only the semantic version decides across menus."""
        current = make_addon("a", "2.0.0", variant_id="old")
        left = menu_of(current)

        left.merge_addons(menu_of(make_addon("a", "1.0.0", variant_id="new")))

        assert left.get("a").spec.variant_id == "old"

    def test_new_names_added(self, make_addon):
        """Test names only in the other menu are added."""
        left = menu_of(make_addon("a"))

        left.merge_addons(menu_of(make_addon("b")))

        assert sorted(left.addons) == ["a", "b"]

    def test_merge_is_idempotent(self, make_addon):
        """Test merging the same menu twice changes nothing more."""
        left = menu_of(make_addon("a", "1.0.0"), make_addon("c", "3.0.0"))
        right = menu_of(make_addon("a", "1.2.0"), make_addon("b", "2.0.0"))

        left.merge_addons(right)
        once = dict(left.addons)
        left.merge_addons(right)

        assert left.addons == once
        assert left.get("a").version == "1.2.0"

    def test_other_menu_unchanged(self, make_addon):
        """Test the source menu is not modified."""
        left = menu_of(make_addon("a", "2.0.0"))
        right = menu_of(make_addon("a", "1.0.0"))

        left.merge_addons(right)

        assert right.get("a").version == "1.0.0"


class TestAddonMenu:
    """Test AddonMenu accessors."""

    def test_empty(self):
        """Test a new menu is empty."""
        menu = AddonMenu()

        assert len(menu) == 0
        assert menu.get("a") is None
        assert "a" not in menu

    def test_sorted_addons(self, make_addon):
        """Test add-ons are returned in name order."""
        menu = menu_of(make_addon("c"), make_addon("a"), make_addon("b"))

        assert [a.name for a in menu.sorted_addons()] == ["a", "b", "c"]
