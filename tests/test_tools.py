# =============================================================================
# tests/test_tools.py - Command line entry points
# =============================================================================

import json

from cheatsheet.extensions import db
from cheatsheet.models import User
from tools.lint_cheatsheet import main as lint_main


class TestLintTool:
    def test_packaged_sheet_is_clean(self, capsys):
        assert lint_main([]) == 0
        assert "0 error(s), 0 warning(s)" in capsys.readouterr().out

    def test_broken_sheet(self, tmp_path, broken_markdown, capsys):
        path = tmp_path / "broken.md"
        path.write_text(broken_markdown, encoding="utf-8")
        assert lint_main([str(path)]) == 1
        out = capsys.readouterr().out
        assert f"{path}:line 6: error: [toc-anchors]" in out

    def test_json_and_check_selection(self, tmp_path, broken_markdown, capsys):
        path = tmp_path / "broken.md"
        path.write_text(broken_markdown, encoding="utf-8")
        assert lint_main([str(path), "--json", "--check", "code-language"]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["checks"] == ["code-language"]
        assert {i["check"] for i in data["issues"]} == {"code-language"}

    def test_missing_file(self, tmp_path, capsys):
        assert lint_main([str(tmp_path / "nope.md")]) == 2
        assert "not found" in capsys.readouterr().err


class TestFlaskCommands:
    def test_lint_command(self, app):
        result = app.test_cli_runner().invoke(args=["lint"])
        assert result.exit_code == 0
        assert "0 error(s)" in result.output

    def test_create_user_command(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["create-user", "grace", "hopper"])
        assert result.exit_code == 0, result.output
        user = db.session.execute(db.select(User).filter_by(username="grace")).scalar_one()
        assert user.check_password("hopper")

        again = runner.invoke(args=["create-user", "grace", "other"])
        assert again.exit_code != 0
        assert "already exists" in again.output

    def test_create_user_overwrite_messages(self, app):
        runner = app.test_cli_runner()
        first = runner.invoke(args=["create-user", "grace", "hopper", "--overwrite"])
        assert first.exit_code == 0, first.output
        assert "Created user 'grace'." in first.output

        second = runner.invoke(args=["create-user", "grace", "cobol", "--overwrite"])
        assert second.exit_code == 0, second.output
        assert "Updated user 'grace'." in second.output
        user = db.session.execute(db.select(User).filter_by(username="grace")).scalar_one()
        assert user.check_password("cobol")

    def test_check_links_command(self, app):
        from cheatsheet.linkcheck import LinkChecker

        from .conftest import FakeSession

        app.extensions["link_checker_factory"] = lambda: LinkChecker(session=FakeSession(), workers=1)
        result = app.test_cli_runner().invoke(args=["check-links"])
        assert result.exit_code == 0, result.output
        assert "ok " in result.output
