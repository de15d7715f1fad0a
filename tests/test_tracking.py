"""Dirty table tracking and the scenario mailbox."""

import json

import pytest

from testreset.tracking import DirtyTableTracker, ScenarioMailbox

from mocks import MockDatabase


@pytest.fixture
def mailbox(tmp_path):
    return ScenarioMailbox(tmp_path / "unit" / "tablesupdatedbyscenario.json")


class TestWrittenTables:
    """Tables inferred from raw SQL."""

    @pytest.mark.parametrize("sql, expected", [
        ("INSERT INTO t_user (username) VALUES ('x')", ["user"]),
        ("INSERT OR REPLACE INTO t_config (name, value) VALUES ('a', 'b')", ["config"]),
        ("update T_USER set email = NULL", ["user"]),
        ('DELETE FROM "t_log" WHERE id > 3', ["log"]),
        ("TRUNCATE TABLE t_log", ["log"]),
        ("ALTER TABLE t_user ADD COLUMN city TEXT", ["user"]),
        ("CREATE TABLE IF NOT EXISTS t_scratch (id INTEGER)", ["scratch"]),
        ("DROP TABLE IF EXISTS `t_scratch`", ["scratch"]),
        ("UPDATE t_user SET a = 1; DELETE FROM t_log; UPDATE t_user SET b = 2", ["user", "log"]),
    ])
    def test_write_statements(self, sql, expected):
        assert MockDatabase().tables_written_by_sql(sql) == expected

    @pytest.mark.parametrize("sql", [
        "SELECT * FROM t_user",
        "SELECT id FROM t_user WHERE id IN (SELECT userid FROM t_log)",
        # Prefix inside a longer name is not a prefixed table.
        "INSERT INTO other_t_user (x) VALUES (1)",
        "UPDATE tx_user SET a = 1",
    ])
    def test_reads_and_foreign_tables_are_ignored(self, sql):
        assert MockDatabase().tables_written_by_sql(sql) == []

    def test_raw_execute_notifies_listeners(self):
        db = MockDatabase()
        seen = []
        db.add_write_listener(seen.append)

        db.execute("UPDATE t_course SET visible = 0")
        db.change_database_structure(["ALTER TABLE t_user ADD x INT", "DROP TABLE t_log"])

        assert seen == ["course", "user", "log"]


class TestDirtyTableTracker:

    def test_mark_is_idempotent(self):
        tracker = DirtyTableTracker()
        tracker.mark("user")
        tracker.mark("user")

        assert len(tracker) == 1
        assert "user" in tracker

    def test_paused_marks_are_ignored(self):
        tracker = DirtyTableTracker()
        with tracker.paused():
            tracker.mark("user")
            with tracker.paused():
                tracker.mark("log")
            tracker.mark("course")
        tracker.mark("config")

        assert tracker.tables == {"config"}

    def test_attached_tracker_sees_adapter_writes(self):
        db = MockDatabase()
        tracker = DirtyTableTracker()
        tracker.attach(db)

        db.insert_record("user", {"username": "x"})
        db.delete_records_select("log", "id > ?", [5])
        tracker.detach(db)
        db.delete_records("course")

        assert tracker.tables == {"user", "log"}

    def test_clear_marks_synced(self):
        tracker = DirtyTableTracker()
        tracker.mark("user")
        assert not tracker.synced

        tracker.clear()

        assert tracker.synced
        assert len(tracker) == 0

    def test_shared_tracker_records_in_mailbox(self, mailbox):
        tracker = DirtyTableTracker(mailbox=mailbox, shared=True)
        tracker.mark("user")
        tracker.mark("log")
        tracker.mark("user")

        assert json.loads(mailbox.path.read_text()) == {"log": True, "user": True}

    def test_unshared_tracker_leaves_mailbox_alone(self, mailbox):
        tracker = DirtyTableTracker(mailbox=mailbox)
        tracker.mark("user")

        assert not mailbox.path.exists()

    def test_merge_mailbox_adds_tables_and_deletes_file(self, mailbox):
        mailbox.record("course")
        tracker = DirtyTableTracker(mailbox=mailbox)
        tracker.mark("user")

        merged = tracker.merge_mailbox()

        assert merged == {"course"}
        assert tracker.tables == {"course", "user"}
        assert not mailbox.path.exists()

    def test_invalidate_forgets_everything(self, mailbox):
        mailbox.record("course")
        tracker = DirtyTableTracker(mailbox=mailbox)
        tracker.mark("user")
        tracker.clear()
        tracker.mark("log")

        tracker.invalidate()

        assert not tracker.synced
        assert len(tracker) == 0
        assert not mailbox.path.exists()


class TestScenarioMailbox:

    def test_missing_file_reads_empty(self, mailbox):
        assert mailbox.read() == {}
        assert mailbox.drain() == set()

    def test_partial_file_is_kept(self, mailbox):
        mailbox.path.parent.mkdir(parents=True)
        mailbox.path.write_text('{"course": tr')

        assert mailbox.read() is None
        assert mailbox.drain() is None
        assert mailbox.path.read_text() == '{"course": tr'

    def test_non_object_is_unreadable(self, mailbox):
        mailbox.path.parent.mkdir(parents=True)
        mailbox.path.write_text('["course"]')

        assert mailbox.read() is None

    def test_record_does_not_overwrite_unreadable_file(self, mailbox):
        mailbox.path.parent.mkdir(parents=True)
        mailbox.path.write_text('{"course": tr')

        mailbox.record("user")

        assert mailbox.path.read_text() == '{"course": tr'

    def test_record_keeps_existing_keys(self, mailbox):
        mailbox.record("user")
        mailbox.record("course")

        assert mailbox.drain() == {"user", "course"}
        assert not mailbox.path.exists()

    def test_record_leaves_no_temporary_files(self, mailbox):
        mailbox.record("user")
        mailbox.record("course")

        assert [p.name for p in mailbox.path.parent.iterdir()] == [mailbox.path.name]

    def test_unreadable_mailbox_forces_full_scan(self, mailbox):
        mailbox.path.parent.mkdir(parents=True)
        mailbox.path.write_text('{"course": tr')
        tracker = DirtyTableTracker(mailbox=mailbox)
        tracker.clear()

        assert tracker.merge_mailbox() == set()
        assert not tracker.synced
        assert mailbox.path.exists()
