"""Tests for the zenload command line interface."""

from typer.testing import CliRunner

from zenload.cli import app
from zenload.settings import reload_settings

runner = CliRunner()


def flat(output: str) -> str:
    """Undo console line wrapping."""
    return " ".join(output.split())


class TestParseCommand:
    """Tests for `zenload parse`."""

    def test_parse_github(self):
        """Test fields of a parsed GitHub reference are shown."""
        result = runner.invoke(app, ["parse", "@github/foo/bar:v1/x.zen"])
        assert result.exit_code == 0
        assert "github" in result.output
        assert "Canonical: @github/foo/bar:v1/x.zen" in flat(result.output)

    def test_parse_not_a_spec(self):
        """Test local paths exit with an error."""
        result = runner.invoke(app, ["parse", "./x.zen"])
        assert result.exit_code == 1
        assert "not a remote or package reference" in flat(result.output)

    def test_parse_malformed_reference(self):
        """Test a reference with an empty path segment exits with an error."""
        result = runner.invoke(app, ["parse", "@stdlib//x.zen"])
        assert result.exit_code == 1
        assert "not a remote or package reference" in flat(result.output)


class TestCacheDirCommand:
    """Tests for `zenload cache-dir`."""

    def test_env_override(self, monkeypatch, temp_dir):
        """Test the configured cache root is printed."""
        monkeypatch.setenv("DIODE_STAR_CACHE_DIR", str(temp_dir / "c"))
        reload_settings()
        result = runner.invoke(app, ["cache-dir"])
        assert result.exit_code == 0
        assert str(temp_dir / "c") in flat(result.output)


class TestAliasesCommand:
    """Tests for `zenload aliases`."""

    def test_lists_builtin_and_workspace_aliases(self, temp_dir):
        """Test built-ins and pcb.toml entries are both listed."""
        (temp_dir / "pcb.toml").write_text('[workspace]\n[packages]\nmine = "@github/me/mine"\n')
        result = runner.invoke(app, ["aliases", "--workspace", str(temp_dir)])
        assert result.exit_code == 0
        assert "stdlib" in result.output
        assert "mine" in result.output
        assert "built-in" in result.output

    def test_broken_pcb_toml(self, temp_dir):
        """Test configuration errors are reported."""
        (temp_dir / "pcb.toml").write_text("[packages\n")
        result = runner.invoke(app, ["aliases", "--workspace", str(temp_dir)])
        assert result.exit_code == 1
        assert "Aliases failed" in result.output


class TestResolveCommand:
    """Tests for `zenload resolve`."""

    def test_resolve_local(self, temp_dir):
        """Test a workspace-relative path."""
        (temp_dir / "pcb.toml").write_text("[workspace]\n")
        (temp_dir / "modules").mkdir()
        (temp_dir / "modules" / "led.zen").write_text("")
        main = temp_dir / "main.zen"
        main.write_text("")

        result = runner.invoke(app, ["resolve", "//modules/led.zen", "--from", str(main)])
        assert result.exit_code == 0
        assert str(temp_dir / "modules" / "led.zen") in flat(result.output)

    def test_resolve_offline_miss(self, monkeypatch, temp_dir):
        """Test offline mode reports uncached remotes."""
        monkeypatch.setenv("DIODE_STAR_CACHE_DIR", str(temp_dir / "cache"))
        reload_settings()
        (temp_dir / "pcb.toml").write_text("[workspace]\n")
        main = temp_dir / "main.zen"
        main.write_text("")

        result = runner.invoke(
            app, ["resolve", "@github/foo/bar:v1/x.zen", "--from", str(main), "--offline"]
        )
        assert result.exit_code == 1
        assert "offline mode" in flat(result.output)

    def test_fetch_invalid_reference(self, temp_dir):
        """Test `zenload fetch` with a local path."""
        result = runner.invoke(app, ["fetch", "./x.zen", "--workspace", str(temp_dir)])
        assert result.exit_code == 1
        assert "Fetch failed" in result.output
