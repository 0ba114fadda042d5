"""Unit tests for LockCleaner and AgeStalenessPolicy."""

import os
import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

from src.config.settings import DEFAULT_LOCK_MAX_AGE, Settings
from src.schemas import LockArtifact
from src.services.lock_cleaner import AgeStalenessPolicy, LockCleaner

NOW = 1_700_000_000.0


def make_lock(git_dir: Path, relative: str, age: float) -> Path:
    path = git_dir / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
    mtime = NOW - age
    os.utime(path, (mtime, mtime))
    return path


class TestAgeStalenessPolicy:
    """Test cases for AgeStalenessPolicy."""

    def test_old_lock_is_stale(self):
        policy = AgeStalenessPolicy(60, clock=lambda: NOW)
        lock = LockArtifact(path=Path("index.lock"), mtime=NOW - 61)

        assert policy(lock) is True

    def test_young_lock_is_kept(self):
        policy = AgeStalenessPolicy(60, clock=lambda: NOW)
        lock = LockArtifact(path=Path("index.lock"), mtime=NOW - 5)

        assert policy(lock) is False

    def test_zero_max_age_treats_every_lock_as_stale(self):
        policy = AgeStalenessPolicy(0, clock=lambda: NOW)
        lock = LockArtifact(path=Path("index.lock"), mtime=NOW)

        assert policy(lock) is True

    def test_future_mtime_counts_as_zero_age(self):
        lock = LockArtifact(path=Path("index.lock"), mtime=NOW + 100)

        assert lock.age(NOW) == 0.0

    def test_held_lock_is_never_stale(self):
        probe = Mock(return_value=True)
        policy = AgeStalenessPolicy(60, clock=lambda: NOW, liveness_probe=probe)
        lock = LockArtifact(path=Path("index.lock"), mtime=NOW - 3600)

        assert policy(lock) is False
        probe.assert_called_once_with(lock)

    def test_probe_not_consulted_for_young_lock(self):
        probe = Mock(return_value=False)
        policy = AgeStalenessPolicy(60, clock=lambda: NOW, liveness_probe=probe)
        lock = LockArtifact(path=Path("index.lock"), mtime=NOW - 1)

        assert policy(lock) is False
        probe.assert_not_called()


class TestLockCleaner:
    """Test cases for LockCleaner."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.git_dir = Path(self.temp_dir.name) / ".git"
        (self.git_dir / "refs" / "heads").mkdir(parents=True)
        (self.git_dir / "refs" / "remotes" / "origin").mkdir(parents=True)
        (self.git_dir / "refs" / "tags").mkdir(parents=True)
        self.cleaner = LockCleaner(AgeStalenessPolicy(60, clock=lambda: NOW))

    def teardown_method(self):
        self.temp_dir.cleanup()

    def test_clean_repository_is_noop(self):
        """No lock artifacts means nothing is found and nothing is removed."""
        assert self.cleaner.find_locks(self.git_dir) == []
        assert self.cleaner.clean(self.git_dir) == []

    def test_missing_ref_namespaces_are_tolerated(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            bare_git_dir = Path(temp_dir)

            assert self.cleaner.clean(bare_git_dir) == []

    def test_find_locks_matches_known_patterns(self):
        make_lock(self.git_dir, "index.lock", 120)
        make_lock(self.git_dir, "packed-refs.lock", 120)
        make_lock(self.git_dir, "refs/heads/feature/x.lock", 120)
        make_lock(self.git_dir, "refs/remotes/origin/main.lock", 120)
        make_lock(self.git_dir, "refs/tags/v1.0.lock", 120)
        # Not lock artifacts
        make_lock(self.git_dir, "config", 120)
        make_lock(self.git_dir, "objects/pack/tmp.lock", 120)
        make_lock(self.git_dir, "refs/heads/main", 120)

        found = [
            lock.path.relative_to(self.git_dir).as_posix()
            for lock in self.cleaner.find_locks(self.git_dir)
        ]

        assert found == [
            "index.lock",
            "packed-refs.lock",
            "refs/heads/feature/x.lock",
            "refs/remotes/origin/main.lock",
            "refs/tags/v1.0.lock",
        ]

    def test_clean_removes_stale_locks_only(self):
        stale = make_lock(self.git_dir, "index.lock", 120)
        fresh = make_lock(self.git_dir, "refs/heads/main.lock", 10)

        removed = self.cleaner.clean(self.git_dir)

        assert [lock.path for lock in removed] == [stale]
        assert not stale.exists()
        assert fresh.exists()

    def test_clean_is_idempotent(self):
        make_lock(self.git_dir, "index.lock", 120)
        make_lock(self.git_dir, "refs/remotes/origin/main.lock", 120)

        first = self.cleaner.clean(self.git_dir)
        second = self.cleaner.clean(self.git_dir)

        assert len(first) == 2
        assert second == []

    def test_lock_gone_before_deletion_is_skipped(self):
        lock_path = make_lock(self.git_dir, "index.lock", 120)

        def vanish(lock):
            lock_path.unlink()
            return True

        cleaner = LockCleaner(vanish)

        assert cleaner.clean(self.git_dir) == []

    def test_lock_taken_again_before_deletion_is_kept(self):
        lock_path = make_lock(self.git_dir, "index.lock", 120)

        def retake(lock):
            # A new git process replaces the lock between scan and unlink
            os.utime(lock_path, (NOW, NOW))
            return True

        cleaner = LockCleaner(retake)

        assert cleaner.clean(self.git_dir) == []
        assert lock_path.exists()

    def test_default_policy_uses_configured_lock_age(self):
        assert AgeStalenessPolicy().max_age == DEFAULT_LOCK_MAX_AGE
        assert Settings.model_fields["LOCK_MAX_AGE"].default == DEFAULT_LOCK_MAX_AGE

    def test_deletion_failure_is_not_fatal(self):
        first = make_lock(self.git_dir, "index.lock", 120)
        second = make_lock(self.git_dir, "refs/heads/main.lock", 120)
        original_unlink = Path.unlink

        def failing_unlink(path, *args, **kwargs):
            if path == first:
                raise PermissionError("Operation not permitted")
            return original_unlink(path, *args, **kwargs)

        with patch.object(Path, "unlink", failing_unlink):
            removed = self.cleaner.clean(self.git_dir)

        assert [lock.path for lock in removed] == [second]
        assert first.exists()
        assert not second.exists()
