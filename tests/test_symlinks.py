"""Tests for exposing cache content inside a workspace."""

import os

from zenload.symlinks import expose_alias_symlink, exposed_path


class TestExposeAliasSymlink:
    """Tests for .pcb/cache links."""

    def test_creates_link(self, temp_dir):
        """Test a link to a cached file is created with its parents."""
        target = temp_dir / "cache" / "units.zen"
        target.parent.mkdir()
        target.write_text("u")
        ws = temp_dir / "ws"
        ws.mkdir()

        link = expose_alias_symlink(ws, "stdlib", "units.zen", target)

        assert link == ws / ".pcb" / "cache" / "stdlib" / "units.zen"
        assert link.is_symlink()
        assert link.read_text() == "u"

    def test_directory_target(self, temp_dir):
        """Test linking a whole checkout."""
        target = temp_dir / "checkout"
        target.mkdir()
        link = expose_alias_symlink(temp_dir / "ws", "lib", "", target)
        assert link == exposed_path(temp_dir / "ws", "lib")
        assert link.resolve() == target

    def test_existing_link_kept(self, temp_dir):
        """Test an existing destination is never replaced."""
        first = temp_dir / "first.zen"
        second = temp_dir / "second.zen"
        first.write_text("1")
        second.write_text("2")
        ws = temp_dir / "ws"

        expose_alias_symlink(ws, "pkg", "x.zen", first)
        link = expose_alias_symlink(ws, "pkg", "x.zen", second)

        assert os.readlink(link) == str(first)

    def test_failure_returns_none(self, temp_dir):
        """Test errors are swallowed and reported as None."""
        ws = temp_dir / "ws"
        ws.mkdir()
        # A regular file where the .pcb directory should be
        (ws / ".pcb").write_text("")

        assert expose_alias_symlink(ws, "pkg", "x.zen", temp_dir) is None
