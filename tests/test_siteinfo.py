"""Environment description for test run headers."""

import platform

from testreset.siteinfo import SiteInfoReporter

COMMIT = "0123456789abcdef0123456789abcdef01234567"


def test_release_from_root_marker(code_root, db):
    assert SiteInfoReporter(code_root, db).get_release() == "4.5 (Build: 20241007)"


def test_unknown_release(tmp_path, db):
    assert SiteInfoReporter(tmp_path, db).get_release() == "unknown"


def test_git_hash_follows_ref(code_root, db):
    git_dir = code_root / ".git"
    (git_dir / "refs" / "heads").mkdir(parents=True)
    (git_dir / "HEAD").write_text("ref: refs/heads/main\n")
    (git_dir / "refs" / "heads" / "main").write_text(COMMIT + "\n")

    assert SiteInfoReporter(code_root, db).get_git_hash() == COMMIT


def test_git_hash_detached_head(code_root, db):
    (code_root / ".git").mkdir()
    (code_root / ".git" / "HEAD").write_text(COMMIT)

    assert SiteInfoReporter(code_root, db).get_git_hash() == COMMIT


def test_git_hash_missing_or_packed(code_root, db):
    reporter = SiteInfoReporter(code_root, db)
    assert reporter.get_git_hash() is None

    (code_root / ".git").mkdir()
    (code_root / ".git" / "HEAD").write_text("ref: refs/heads/packed\n")
    assert reporter.get_git_hash() is None


def test_site_info_text(code_root, db):
    (code_root / ".git").mkdir()
    (code_root / ".git" / "HEAD").write_text(COMMIT)

    info = SiteInfoReporter(code_root, db).get_site_info()

    lines = info.splitlines()
    assert lines[0] == f"Release 4.5 (Build: 20241007), {COMMIT}"
    assert lines[1].startswith(f"Python: {platform.python_version()}, sqlite: ")
    assert ", OS: " in lines[1]
    assert info.endswith("\n")


def test_environment_uses_configured_dbtype(code_root, db):
    env = SiteInfoReporter(code_root, db, dbtype="sqlite3").get_environment()

    assert env["dbtype"] == "sqlite3"
    assert env["version"] == "4.5 (Build: 20241007)"
