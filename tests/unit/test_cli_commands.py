"""Unit tests for the CLI: Typer command registration and basic behavior.

Exercises every command through typer.testing.CliRunner against a
temporary storage root.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
import responses
from typer.testing import CliRunner

from debpool.cli.app import app
from debpool.core.pool import FilesPackagePool
from debpool.errors import PoolEntryNotFoundError

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_cwd(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DEBPOOL_ROOT_DIR", raising=False)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path / "repo"


@pytest.fixture
def package(tmp_path: Path) -> Path:
    path = tmp_path / "incoming" / "mars-invaders_1.03.deb"
    path.parent.mkdir()
    path.write_bytes(b"Contents")
    return path


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("import", "pool-list", "pool-verify", "publish", "published-list", "download"):
            assert command in result.output

    @pytest.mark.parametrize(
        "command", ["import", "pool-list", "pool-verify", "publish", "published-list", "download"]
    )
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# Test: pool commands
# ---------------------------------------------------------------------------


class TestPoolCommands:
    def test_import_prints_pool_path(self, root, package):
        result = runner.invoke(app, ["import", str(package), "--root", str(root)])
        assert result.exit_code == 0, result.output

        md5 = hashlib.md5(b"Contents").hexdigest()
        expected = f"{md5[:2]}/{md5[2:4]}/{md5}_mars-invaders_1.03.deb"
        assert expected in result.output
        assert (root / "pool" / expected).read_bytes() == b"Contents"
        assert package.exists()

    def test_import_move(self, root, package):
        result = runner.invoke(app, ["import", str(package), "--move", "-r", str(root)])
        assert result.exit_code == 0, result.output
        assert not package.exists()

    def test_import_missing_file(self, root, tmp_path):
        result = runner.invoke(app, ["import", str(tmp_path / "nope.deb"), "-r", str(root)])
        assert result.exit_code != 0

    def test_pool_list(self, root, package):
        runner.invoke(app, ["import", str(package), "-r", str(root)])
        result = runner.invoke(app, ["pool-list", "-r", str(root)])
        assert result.exit_code == 0
        assert "_mars-invaders_1.03.deb" in result.output

    def test_pool_verify_ok(self, root, package):
        runner.invoke(app, ["import", str(package), "-r", str(root)])
        result = runner.invoke(app, ["pool-verify", "-r", str(root)])
        assert result.exit_code == 0
        assert "All 1 pool entries verified." in result.output

    def test_pool_verify_reports_corruption(self, root, package):
        runner.invoke(app, ["import", str(package), "--move", "-r", str(root)])
        pool = FilesPackagePool(root / "pool")
        (entry,) = pool.filepath_list()
        pool.full_path(entry).write_bytes(b"tampered")

        result = runner.invoke(app, ["pool-verify", "-r", str(root)])
        assert result.exit_code == 1
        assert "Corrupted pool entries" in result.output

    def test_pool_verify_reports_unreadable_entry(self, root, package, monkeypatch):
        runner.invoke(app, ["import", str(package), "-r", str(root)])

        def vanished(self, path):
            raise PoolEntryNotFoundError(f"pool entry {path} not found")

        monkeypatch.setattr(FilesPackagePool, "verify", vanished)
        result = runner.invoke(app, ["pool-verify", "-r", str(root)])

        assert result.exit_code == 1
        assert "Verify failed" in result.output
        assert "not found" in result.output


# ---------------------------------------------------------------------------
# Test: publish commands
# ---------------------------------------------------------------------------


class TestPublishCommands:
    def test_publish_and_list(self, root, package):
        result = runner.invoke(app, ["publish", str(package), "-r", str(root)])
        assert result.exit_code == 0, result.output
        assert "Published" in result.output

        published = root / "public" / "pool/main/m/mars-invaders/mars-invaders_1.03.deb"
        assert published.read_bytes() == b"Contents"

        listing = runner.invoke(app, ["published-list", "pool", "-r", str(root)])
        assert listing.exit_code == 0
        assert "main/m/mars-invaders/mars-invaders_1.03.deb" in listing.output

    def test_publish_twice_is_idempotent(self, root, package):
        first = runner.invoke(app, ["publish", str(package), "-p", "ppa", "-r", str(root)])
        second = runner.invoke(app, ["publish", str(package), "-p", "ppa", "-r", str(root)])
        assert first.exit_code == 0
        assert second.exit_code == 0

    def test_publish_conflict(self, root, package, tmp_path):
        runner.invoke(app, ["publish", str(package), "-r", str(root)])
        other = tmp_path / "other" / package.name
        other.parent.mkdir()
        other.write_bytes(b"Different")

        result = runner.invoke(app, ["publish", str(other), "-r", str(root)])
        assert result.exit_code == 1
        assert "Publish failed" in result.output

        forced = runner.invoke(app, ["publish", str(other), "--force", "-r", str(root)])
        assert forced.exit_code == 0, forced.output
        published = root / "public" / "pool/main/m/mars-invaders/mars-invaders_1.03.deb"
        assert published.read_bytes() == b"Different"

    def test_published_list_rejects_escape(self, root):
        result = runner.invoke(app, ["published-list", "../..", "-r", str(root)])
        assert result.exit_code == 1
        assert "Listing failed" in result.output


# ---------------------------------------------------------------------------
# Test: download command
# ---------------------------------------------------------------------------


class TestDownloadCommand:
    URL = "http://mirror.example.org/pool/main/h/hello/hello_1.0.deb"

    @responses.activate
    def test_download_verified(self, tmp_path):
        responses.add(responses.GET, self.URL, body=b"hello", status=200)
        destination = tmp_path / "hello_1.0.deb"

        result = runner.invoke(
            app,
            ["download", self.URL, str(destination), "--sha256", hashlib.sha256(b"hello").hexdigest()],
        )

        assert result.exit_code == 0, result.output
        assert "Saved" in result.output
        assert destination.read_bytes() == b"hello"

    @responses.activate
    def test_download_mismatch(self, tmp_path):
        responses.add(responses.GET, self.URL, body=b"hello", status=200)
        destination = tmp_path / "hello_1.0.deb"

        result = runner.invoke(
            app,
            ["download", self.URL, str(destination), "--md5", "0" * 32, "--max-tries", "2"],
        )

        assert result.exit_code == 1
        assert "Download failed" in result.output
        assert len(responses.calls) == 2
        assert not destination.exists()

    def test_download_invalid_digest(self, tmp_path):
        result = runner.invoke(
            app, ["download", self.URL, str(tmp_path / "x.deb"), "--md5", "not-hex"]
        )
        assert result.exit_code == 1
        assert "Invalid checksum" in result.output

    @responses.activate
    def test_max_tries_defaults_to_settings(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEBPOOL_DOWNLOAD_MAX_TRIES", "2")
        responses.add(responses.GET, self.URL, body=b"hello", status=200)

        result = runner.invoke(
            app, ["download", self.URL, str(tmp_path / "hello_1.0.deb"), "--md5", "0" * 32]
        )

        assert result.exit_code == 1
        assert len(responses.calls) == 2
