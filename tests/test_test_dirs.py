"""
Unit tests for TestDirectoryManager.

Tests directory creation, custom naming, renames with retries, release
hooks and propagation of the binding to other threads.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from runreport.core.exceptions import TestDirectoryError
from runreport.storage.models import TestDirectoryState
from runreport.storage.test_dirs import TestDirectoryManager


@pytest.fixture
def launch_root(tmp_path) -> Path:
    root = tmp_path / "1700000000000"
    root.mkdir()
    return root


@pytest.fixture
def manager(launch_root):
    return TestDirectoryManager(lambda: launch_root, retry_pause=0)


class TestSanitize:
    """Test cases for directory name sanitization."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("login test", "login_test"),
            ("Checkout/Payment: VISA", "Checkout_Payment__VISA"),
            ("v1.2-rc", "v1.2-rc"),
            ("ünïcode", "_n_code"),
        ],
    )
    def test_sanitize(self, name, expected):
        assert TestDirectoryManager.sanitize(name) == expected


class TestDirectoryLifecycle:
    """Test cases for creating and binding test directories."""

    def test_get_or_create_makes_uuid_directory(self, manager, launch_root):
        test_dir = manager.get_or_create()

        assert test_dir.path.parent == launch_root
        assert test_dir.path.is_dir()
        assert len(test_dir.name) == 36
        assert test_dir.state is TestDirectoryState.AUTO_NAMED

    def test_get_or_create_is_stable(self, manager):
        first = manager.get_or_create()
        second = manager.get_or_create("ignored")

        assert first == second

    def test_get_or_create_with_name(self, manager, launch_root):
        test_dir = manager.get_or_create("smoke suite")

        assert test_dir.path == launch_root / "smoke_suite"
        assert test_dir.is_custom_name is False

    def test_current_path_unbound(self, manager):
        assert manager.current() is None
        assert manager.current_path() is None

    def test_clear_unbinds_without_deleting(self, manager):
        test_dir = manager.get_or_create()

        manager.clear()

        assert manager.current() is None
        assert test_dir.path.is_dir()
        assert manager.get_or_create() != test_dir

    def test_create_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file in the way")
        manager = TestDirectoryManager(lambda: blocker)

        with pytest.raises(TestDirectoryError, match="Test folder not created"):
            manager.get_or_create("login")


class TestCustomName:
    """Test cases for assigning custom names."""

    def test_custom_name_on_empty_binding_creates_directory(self, manager, launch_root):
        test_dir = manager.set_custom_name("Login page")

        assert test_dir.path == launch_root / "Login_page"
        assert test_dir.path.is_dir()
        assert test_dir.state is TestDirectoryState.CUSTOM_NAMED

    def test_rename_moves_contents(self, manager, launch_root):
        auto = manager.get_or_create()
        (auto.path / "1700000000001.png").write_bytes(b"png")

        renamed = manager.set_custom_name("Login page")

        assert renamed.path == launch_root / "Login_page"
        assert not auto.path.exists()
        assert (renamed.path / "1700000000001.png").read_bytes() == b"png"
        assert manager.current() == renamed

    def test_second_custom_name_is_ignored(self, manager, launch_root):
        first = manager.set_custom_name("first")

        second = manager.set_custom_name("second")

        assert second == first
        assert not (launch_root / "second").exists()

    def test_existing_target_keeps_source(self, manager, launch_root):
        (launch_root / "taken").mkdir()
        auto = manager.get_or_create()

        result = manager.set_custom_name("taken")

        assert result.path == auto.path
        assert result.is_custom_name is True
        assert auto.path.is_dir()

    def test_rename_retries_then_succeeds(self, manager, launch_root):
        auto = manager.get_or_create()
        real_rename = Path.rename
        calls = {"count": 0}

        def flaky_rename(self, target):
            calls["count"] += 1
            if calls["count"] < 3:
                raise PermissionError("directory in use")
            return real_rename(self, target)

        with patch.object(Path, "rename", flaky_rename):
            renamed = manager.set_custom_name("flaky")

        assert calls["count"] == 3
        assert renamed.path == launch_root / "flaky"
        assert not auto.path.exists()

    def test_rename_gives_up_after_attempts(self, manager):
        auto = manager.get_or_create()

        with patch.object(Path, "rename", side_effect=PermissionError("locked")) as mock_rename:
            result = manager.set_custom_name("locked")

        assert mock_rename.call_count == manager.rename_attempts
        assert result.path == auto.path
        assert result.is_custom_name is True

    def test_release_hooks_run_before_rename(self, manager):
        hook = MagicMock()
        manager.add_release_hook(hook)
        auto = manager.get_or_create()

        manager.set_custom_name("hooked")

        hook.assert_called_once_with(auto.path)

    def test_failing_release_hook_does_not_block_rename(self, manager, launch_root):
        manager.add_release_hook(MagicMock(side_effect=RuntimeError("boom")))
        manager.get_or_create()

        renamed = manager.set_custom_name("still renamed")

        assert renamed.path == launch_root / "still_renamed"

    def test_clear_runs_release_hooks(self, manager):
        hook = MagicMock()
        manager.add_release_hook(hook)
        test_dir = manager.get_or_create()

        manager.clear()

        hook.assert_called_once_with(test_dir.path)


class TestContextPropagation:
    """Test cases for binding isolation and propagation across threads."""

    def test_new_thread_starts_unbound(self, manager):
        manager.get_or_create()
        seen = []

        thread = threading.Thread(target=lambda: seen.append(manager.current()))
        thread.start()
        thread.join()

        assert seen == [None]

    def test_threads_get_separate_directories(self, manager):
        paths = []
        lock = threading.Lock()

        def worker():
            path = manager.get_or_create().path
            with lock:
                paths.append(path)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(paths)) == 4

    def test_wrap_propagates_binding_to_executor(self, manager):
        test_dir = manager.get_or_create()

        with ThreadPoolExecutor(max_workers=1) as executor:
            seen = executor.submit(manager.wrap(manager.current)).result()

        assert seen == test_dir

    def test_bind_restores_previous_binding(self, manager):
        outer = manager.get_or_create("outer")
        captured = manager.capture()
        manager.clear()

        with manager.bind(captured) as bound:
            assert bound == outer
            assert manager.current() == outer

        assert manager.current() is None
