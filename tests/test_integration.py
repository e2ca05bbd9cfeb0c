"""End-to-end sync runs against real repositories."""

import json
import shutil
from dataclasses import replace

import pytest
from click.testing import CliRunner

from tagsync.cli import cli
from tagsync.config import load_sync_config, merge_configs, get_default_config
from tagsync.domain import StageStatus
from tagsync.exit_codes import ConsistencyError
from tagsync.services.sync_service import SyncService

from conftest import HAS_GIT

pytestmark = pytest.mark.skipif(not HAS_GIT, reason="git is not installed")


def run(service, **kwargs):
    progress = service.run(**kwargs)
    while True:
        try:
            next(progress)
        except StopIteration as stop:
            return stop.value


@pytest.fixture
def sync_config(zf_config):
    return load_sync_config(merge_configs(get_default_config(), zf_config))


@pytest.fixture
def config_file(tmp_path, zf_config):
    path = tmp_path / "tagsync.json"
    path.write_text(json.dumps(zf_config))
    return path


class TestSyncEndToEnd:
    """A full sync of one mirror from a monorepo."""

    def test_replays_history(self, zf_layout, sync_config, git):
        """Each commit touching the subtree becomes one mirror commit with its time."""
        summary = run(SyncService(sync_config))

        assert summary.successful == 1
        assert summary.details[0].commits_replayed == 2

        mirror = zf_layout["mirror"]
        times = git(mirror, "log", "--reverse", "--format=%at %ct", "master").split("\n")
        assert [t for t in times if t] == ["100 100", "200 200"]

        subjects = git(mirror, "log", "--reverse", "--format=%s", "master").strip().split("\n")
        assert subjects == [
            f"Importing state as of zendframework/zf2@{zf_layout['c1']} (100)",
            f"Importing state as of zendframework/zf2@{zf_layout['c2']} (200)",
        ]
        body = git(mirror, "log", "-1", "--format=%B", "master")
        assert "Automatic import via python" in body
        assert "Preparing release for tag 'v1'" in body
        assert git(mirror, "log", "-1", "--format=%an", "master").strip() == "Sync Bot"

    def test_tag_and_contents(self, zf_layout, sync_config, git):
        """The tag cites the last subtree commit and the trees match."""
        run(SyncService(sync_config))

        mirror = zf_layout["mirror"]
        message = git(mirror, "tag", "-l", "--format=%(contents:subject)", "v1").strip()
        assert message == f"vendor/foo@{zf_layout['c2']} (200)"
        assert git(mirror, "cat-file", "-t", "v1").strip() == "tag"

        files = set(git(mirror, "ls-tree", "-r", "--name-only", "v1").split())
        assert files == {"composer.json", "README.md", "src/Foo.php"}
        assert (mirror / "src" / "Foo.php").read_text() == "<?php\nclass Foo { const VERSION = 1; }\n"

    def test_published(self, zf_layout, sync_config, git):
        """Branch and tag reach the remote."""
        run(SyncService(sync_config))

        remote = zf_layout["remote"]
        refs = git(remote, "for-each-ref", "--format=%(refname)").split()
        assert "refs/heads/master" in refs
        assert "refs/tags/v1" in refs

    def test_second_run_skips(self, zf_layout, sync_config, git):
        """Once the remote has the tag the component is left alone."""
        run(SyncService(sync_config))
        head = git(zf_layout["mirror"], "rev-parse", "master").strip()

        summary = run(SyncService(sync_config))

        assert summary.skipped == 1
        assert summary.details[0].action == "up_to_date"
        assert git(zf_layout["mirror"], "rev-parse", "master").strip() == head

    def test_rerun_without_push_skips(self, zf_layout, sync_config, git):
        """A local destination tag is enough to leave the mirror alone."""
        config = replace(sync_config, push=False)
        run(SyncService(config))
        head = git(zf_layout["mirror"], "rev-parse", "master").strip()

        summary = run(SyncService(config))

        assert summary.skipped == 1
        assert summary.details[0].action == "up_to_date"
        assert git(zf_layout["mirror"], "rev-parse", "master").strip() == head

    def test_rerun_after_dropping_tag_replays_nothing(self, zf_layout, sync_config, git):
        """Commits already replayed are not recorded twice."""
        config = replace(sync_config, push=False)

        first = run(SyncService(config))
        git(zf_layout["mirror"], "tag", "-d", "v1")
        second = run(SyncService(config))

        assert first.details[0].commits_replayed == 2
        assert second.details[0].commits_replayed == 0
        assert second.details[0].action == "verified"
        assert git(zf_layout["mirror"], "rev-list", "--count", "master").strip() == "2"
        assert git(zf_layout["remote"], "for-each-ref").strip() == ""

    def test_dry_run_changes_nothing(self, zf_layout, sync_config, git):
        """A dry run reports and leaves the mirror unborn."""
        summary = run(SyncService(sync_config), dry_run=True)

        assert summary.details[0].status == StageStatus.DRY_RUN
        assert summary.details[0].commits_replayed == 2
        assert git(zf_layout["mirror"], "for-each-ref").strip() == ""

    def test_tampered_mirror_fails_verification(self, zf_layout, sync_config, git):
        """A mirror changed after import does not verify and is not pushed."""
        run(SyncService(replace(sync_config, push=False)))

        mirror = zf_layout["mirror"]
        (mirror / "extra.txt").write_text("not in the monorepo\n")
        git(mirror, "add", "extra.txt")
        git(mirror, "commit", "-q", "-m", "Local change")
        git(mirror, "tag", "-f", "-a", "v1", "-m", "moved")

        service = SyncService(sync_config)
        with pytest.raises(ConsistencyError) as exc_info:
            service.verifier.verify(service.locate()[0])

        assert "extra.txt" in exc_info.value.diff

    def test_untouched_source_range(self, zf_layout, sync_config, git):
        """A component with no commits in range is still tagged and verified."""
        config = replace(sync_config, source_tag="v1", push=False)
        run(SyncService(replace(sync_config, push=False)))
        git(zf_layout["mirror"], "tag", "-d", "v1")

        summary = run(SyncService(config))

        assert summary.details[0].commits_replayed == 0
        assert summary.details[0].action == "verified"


@pytest.mark.skipif(shutil.which("rsync") is None, reason="rsync is not installed")
class TestRsyncEndToEnd:
    """The rsync mirror gives the same result as the default."""

    def test_rsync_sync(self, zf_layout, zf_config, git):
        """Sync with rsync produces identical trees."""
        zf_config["mirror"] = {"tool": "rsync"}
        config = load_sync_config(merge_configs(get_default_config(), zf_config))

        summary = run(SyncService(config))

        assert summary.successful == 1
        body = git(zf_layout["mirror"], "log", "-1", "--format=%B", "master")
        assert "Automatic import via rsync" in body


class TestCliEndToEnd:
    """The CLI drives the same pipeline."""

    def test_sync_then_verify(self, config_file):
        """sync publishes and verify then passes."""
        runner = CliRunner()

        result = runner.invoke(cli, ["sync", "--config", str(config_file), "--json"])
        assert result.exit_code == 0, result.output
        lines = [json.loads(line) for line in result.stdout.splitlines() if line.startswith("{")]
        assert lines[0]["name"] == "vendor/foo"
        assert lines[0]["action"] == "published"
        assert lines[-1]["type"] == "summary"

        result = runner.invoke(cli, ["verify", "--config", str(config_file)])
        assert result.exit_code == 0, result.output

    def test_verify_mismatch_exit_code(self, zf_layout, config_file, git):
        """A diverging mirror makes verify exit 73 and print the diff."""
        runner = CliRunner()
        result = runner.invoke(cli, ["sync", "--config", str(config_file), "--no-push"])
        assert result.exit_code == 0, result.output

        mirror = zf_layout["mirror"]
        (mirror / "README.md").write_text("# Changed\n")
        git(mirror, "commit", "-q", "-a", "-m", "Local change")
        git(mirror, "tag", "-f", "-a", "v1", "-m", "moved")

        result = runner.invoke(cli, ["verify", "--config", str(config_file)])

        assert result.exit_code == 73
        assert "Mirror differs" in result.stderr
        assert "+# Changed" in result.stderr

    def test_dry_run_from_command_line(self, zf_layout, config_file):
        """Command-line options override the config file."""
        runner = CliRunner()
        result = runner.invoke(cli, [
            "sync", "--config", str(config_file), "--from-tag", "v1", "--dry-run", "--json",
        ])

        assert result.exit_code == 0, result.output
        detail = json.loads(result.stdout.splitlines()[0])
        assert detail["status"] == "dry_run"
        assert detail["commits_replayed"] == 0
