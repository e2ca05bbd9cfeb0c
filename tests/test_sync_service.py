"""Tests for the SyncService pipeline."""

from unittest.mock import MagicMock

import pytest

from tagsync.config import SyncConfig
from tagsync.domain import Commit, FrameworkComponent, ReleaseTag, StageStatus
from tagsync.exit_codes import (
    ConsistencyError,
    DelegatedToolFailure,
    MalformedCommitRecord,
    NoComponentsFoundError,
)
from tagsync.services.sync_service import SyncService

A = "a" * 40
B = "b" * 40

FOO = FrameworkComponent("Foo", "vendor/foo", "/zf2/library/Zend/Foo", "/mirrors/Zend/Foo")
BAR = FrameworkComponent("Bar", "vendor/bar", "/zf2/library/Zend/Bar", "/mirrors/Zend/Bar")


def drain(gen):
    """Collect progress messages and the generator's return value."""
    messages = []
    while True:
        try:
            messages.append(next(gen))
        except StopIteration as stop:
            return messages, stop.value


@pytest.fixture
def config():
    return SyncConfig(monorepo_path="/zf2", mirrors_root="/mirrors", source_tag="v0", destination_tag="v1")


@pytest.fixture
def service(config):
    """A SyncService whose stage collaborators are mocks sharing one call log."""
    svc = SyncService(config, git_client=MagicMock(), directory_sync=MagicMock(), manifest_reader=MagicMock())

    stages = MagicMock()
    svc.locator = stages.locator
    svc.importer = stages.importer
    svc.tagger = stages.tagger
    svc.verifier = stages.verifier
    svc.publisher = stages.publisher
    svc.stages = stages

    svc.locator.locate.return_value = [FOO, BAR]
    svc.importer.is_synchronized.return_value = False
    svc.importer.pending_commits.return_value = [Commit(A, 100), Commit(B, 200)]
    svc.importer.replay.return_value = 2
    svc.tagger.tag.side_effect = lambda c: ReleaseTag("v1", f"{c.name}@{B} (200)", Commit(B, 200))
    return svc


def stage_calls(svc):
    return [(name, args[0].name) for name, args, _ in svc.stages.mock_calls
            if name.split('.')[0] in ('importer', 'tagger', 'verifier', 'publisher') and args
            and isinstance(args[0], FrameworkComponent)]


class TestRun:
    """Tests for SyncService.run."""

    def test_stages_in_order(self, service):
        """Every component completes a stage before any starts the next."""
        messages, summary = drain(service.run())

        calls = [(name, comp) for name, comp in stage_calls(service) if name != "importer.pending_commits"]
        assert calls == [
            ("importer.is_synchronized", "vendor/foo"),
            ("importer.is_synchronized", "vendor/bar"),
            ("importer.reset", "vendor/foo"),
            ("importer.reset", "vendor/bar"),
            ("importer.replay", "vendor/foo"),
            ("importer.replay", "vendor/bar"),
            ("tagger.tag", "vendor/foo"),
            ("tagger.tag", "vendor/bar"),
            ("verifier.verify", "vendor/foo"),
            ("verifier.verify", "vendor/bar"),
            ("publisher.publish", "vendor/foo"),
            ("publisher.publish", "vendor/bar"),
        ]
        assert messages[0] == "Found 2 components under /mirrors"

    def test_summary(self, service):
        """A successful run reports every component as published."""
        _, summary = drain(service.run())

        assert summary is service.last_result
        assert summary.total == 2
        assert summary.successful == 2
        assert summary.success
        detail = summary.details[0]
        assert detail.status == StageStatus.SUCCESS
        assert detail.action == "published"
        assert detail.commits_replayed == 2
        assert detail.message == f"vendor/foo@{B} (200)"

    def test_skip_synchronized_component(self, service):
        """A component whose remote has the tag is only checked."""
        service.importer.is_synchronized.side_effect = lambda c: c is FOO

        messages, summary = drain(service.run())

        touched = {comp for name, comp in stage_calls(service) if name != "importer.is_synchronized"}
        assert touched == {"vendor/bar"}
        assert "  vendor/foo: v1 already exists, skipping" in messages
        assert summary.skipped == 1
        assert summary.successful == 1

    def test_all_synchronized(self, service):
        """Nothing happens beyond the check when every remote has the tag."""
        service.importer.is_synchronized.return_value = True

        messages, summary = drain(service.run())

        assert messages[-1] == "All components are up to date"
        assert summary.skipped == 2
        service.importer.replay.assert_not_called()
        service.tagger.tag.assert_not_called()
        service.publisher.publish.assert_not_called()

    def test_dry_run(self, service):
        """A dry run reports pending commits and changes nothing."""
        messages, summary = drain(service.run(dry_run=True))

        assert "Would replay 2 commits into vendor/foo" in messages
        assert summary.dry_run is True
        assert [d.status for d in summary.details] == [StageStatus.DRY_RUN, StageStatus.DRY_RUN]
        service.importer.reset.assert_not_called()
        service.importer.replay.assert_not_called()
        service.tagger.tag.assert_not_called()
        service.publisher.publish.assert_not_called()

    def test_verification_failure_blocks_every_push(self, service):
        """A mismatch in any component means nothing is pushed."""
        def verify(component):
            if component is BAR:
                raise ConsistencyError("differs", diff="Only in x: y\n", component=component)
        service.verifier.verify.side_effect = verify

        with pytest.raises(ConsistencyError):
            drain(service.run())

        service.publisher.publish.assert_not_called()
        failed = [d for d in service.last_result.details if d.status == StageStatus.FAILED]
        assert [(d.component, d.action) for d in failed] == [(BAR, "verify_failed")]

    def test_tool_failure_annotated(self, service):
        """Tool failures name the component they happened in."""
        service.importer.replay.side_effect = DelegatedToolFailure("git commit failed", returncode=1)

        with pytest.raises(DelegatedToolFailure) as exc_info:
            drain(service.run())

        assert exc_info.value.component is FOO
        assert "vendor/foo" in str(exc_info.value)
        assert service.last_result.details[-1].action == "import_failed"
        service.tagger.tag.assert_not_called()

    def test_malformed_record_annotated(self, service):
        """Malformed history names the component."""
        service.importer.pending_commits.side_effect = MalformedCommitRecord("Invalid hash")

        with pytest.raises(MalformedCommitRecord) as exc_info:
            drain(service.run())

        assert exc_info.value.component is FOO
        assert exc_info.value.exit_code == 70

    def test_push_disabled(self, service, config):
        """With push off components are verified but not published."""
        from dataclasses import replace
        service.config = replace(config, push=False)

        _, summary = drain(service.run())

        service.publisher.publish.assert_not_called()
        assert [d.action for d in summary.details] == ["verified", "verified"]

    def test_no_components(self, service):
        """An empty mirrors root is an error."""
        service.locator.locate.return_value = []

        with pytest.raises(NoComponentsFoundError):
            drain(service.run())


class TestVerifyAll:
    """Tests for SyncService.verify_all."""

    def test_verifies_every_component(self, service):
        """Every component is verified, none is changed."""
        messages, summary = drain(service.verify_all())

        assert messages[0] == "Verifying 2 components at v1"
        assert summary.operation == "verify"
        assert summary.successful == 2
        service.importer.replay.assert_not_called()
        service.publisher.publish.assert_not_called()

    def test_stops_at_first_mismatch(self, service):
        """The first mismatch aborts verification."""
        service.verifier.verify.side_effect = ConsistencyError("differs", component=FOO)

        with pytest.raises(ConsistencyError):
            drain(service.verify_all())

        assert service.verifier.verify.call_count == 1
