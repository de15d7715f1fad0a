"""TestEnvironment end to end, plus console and logging output."""

import io
import logging

import pytest

from rich.console import Console
from rich.logging import RichHandler

from testreset import configure_logging
from testreset.errors import ResetStatus, SnapshotStatus
from testreset.manager import TestEnvironment
from testreset.snapshot.models import ResetResult
from testreset.ui.console import ConsoleUI


class TestSiteChecks:

    def test_not_a_test_site_before_capture(self, env):
        assert not env.is_test_site()

    def test_test_site_after_capture(self, captured_env):
        assert captured_env.marker_path.exists()
        assert captured_env.is_test_site()

    def test_missing_framework_flag(self, captured_env):
        captured_env.db.execute("DELETE FROM t_config WHERE name = ?", ["unittest"])
        captured_env.db.purge_config_cache()

        assert not captured_env.is_test_site()

    def test_empty_database_with_marker_is_test_site(self, config, empty_db, dataroot):
        env = TestEnvironment(config, empty_db, ui=ConsoleUI(quiet=True))
        env.marker_path.write_text("marker")

        assert env.is_test_site()

    def test_site_info(self, captured_env):
        assert captured_env.site_info().startswith("Release 4.5")


class TestCapture:

    def test_capture_saves_manifest(self, env, dataroot):
        (dataroot / "filedir").mkdir()
        (dataroot / "filedir" / "installed.txt").write_text("x")

        env.capture()

        assert (dataroot / "originaldatafiles.json").exists()
        assert env.status() == SnapshotStatus.CURRENT

    def test_capture_leaves_nothing_dirty(self, captured_env):
        assert len(captured_env.context.tracker) == 0
        assert captured_env.context.tracker.synced


class TestReset:

    def test_reset_covers_database_and_dataroot(self, captured_env, dataroot):
        captured_env.db.insert_record("course", {"fullname": "Maths", "visible": 1})
        (dataroot / "stray.txt").write_text("left by a test")

        result = captured_env.reset()

        assert result.database.tables_truncated == ["course"]
        assert "stray.txt" in result.dataroot.removed
        assert (dataroot / "temp").is_dir()
        assert captured_env.is_test_site()


class TestDrop:

    def test_config_table_is_dropped_last(self, captured_env):
        dropped = []
        captured_env.db.add_write_listener(dropped.append)

        tables = captured_env.drop_database()

        assert tables[-1] == "config"
        assert dropped[-1] == "config"
        assert captured_env.db.get_tables() == []
        assert len(captured_env.context.tracker) == 0

    def test_drop_removes_environment(self, captured_env):
        captured_env.drop()

        # The marker stays so the dataroot can be installed into again.
        assert captured_env.marker_path.exists()
        assert captured_env.db.get_tables() == []
        assert captured_env.status() == SnapshotStatus.NOT_INITIALIZED
        assert captured_env.reset_database().status == ResetStatus.NOT_INSTALLED
        assert not captured_env.context.tracker.synced

    def test_drop_with_progress(self, captured_env):
        console = Console(file=io.StringIO(), width=100)
        captured_env.ui = ConsoleUI(console=console)

        tables = captured_env.drop_database(display_progress=True)

        assert set(tables) == {"config", "course", "log", "user", "user_preferences"}


class TestConsoleUI:

    def make_ui(self, quiet=False):
        output = io.StringIO()
        return ConsoleUI(quiet=quiet, console=Console(file=output, width=100)), output

    def test_reset_result_table(self):
        ui, output = self.make_ui()
        result = ResetResult(
            status=ResetStatus.RESET,
            tables_truncated=["user"],
            tables_dropped=["scratch"],
            sequences={"user": 100000},
        )

        ui.print_reset_result(result)

        text = output.getvalue()
        assert "truncated" in text
        assert "dropped" in text
        assert "100000" in text

    def test_skipped_reset(self):
        ui, output = self.make_ui()

        ui.print_reset_result(ResetResult.skipped(ResetStatus.NOT_INITIALIZED))

        assert "skipped (not_initialized)" in output.getvalue()

    def test_quiet_prints_errors_only(self):
        ui, output = self.make_ui(quiet=True)

        ui.print_status(SnapshotStatus.STALE)
        ui.print_error("snapshot unreadable")

        assert output.getvalue().strip() == "Error: snapshot unreadable"


class TestLogging:

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        yield
        logger = logging.getLogger("testreset")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
        logger.propagate = True

    def test_single_rich_handler(self):
        console = Console(file=io.StringIO())
        configure_logging("INFO", console=console)
        logger = configure_logging("DEBUG", console=console)

        handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert logger.level == logging.DEBUG
        assert not logger.propagate

    def test_quiet_only_reports_errors(self):
        logger = configure_logging("DEBUG", quiet=True, console=Console(file=io.StringIO()))

        assert logger.level == logging.ERROR

    def test_package_records_reach_the_console(self, captured_env):
        output = io.StringIO()
        configure_logging("INFO", console=Console(file=output, width=200))

        captured_env.reset_database()

        assert "Database reset" in output.getvalue()
