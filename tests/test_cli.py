from datetime import date
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from quire.build import BuildResult
from quire.cli import _create_post, _get_existing_slugs, _get_sections, cli


def scaffold(tmp_path: Path) -> Path:
    project = tmp_path / "blog"
    result = CliRunner().invoke(cli, ["new", str(project)])
    assert result.exit_code == 0, result.output
    return project


def test_cli_new_scaffolds_project(tmp_path):
    runner = CliRunner()
    project = scaffold(tmp_path)
    assert (project / "quire.yaml").exists()
    assert (project / "content" / "_index.md").exists()
    assert (project / "content" / "2024-05-12-exporting-fmus-from-rust.md").exists()
    assert (project / "templates" / "blog-page.html").exists()
    assert (project / "static" / "css" / "site.css").exists()

    # fails on non-empty directory
    result = runner.invoke(cli, ["new", str(project)])
    assert result.exit_code != 0
    assert "non-empty" in result.output


def test_cli_builds_scaffolded_project(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 2 pages" in result.output

    index = (project / "public" / "index.html").read_text(encoding="utf-8")
    assert "Rust for numerical software" in index
    assert "MSc Mechanical Engineering, Example Institute of Technology (2019)" in index
    assert 'href="mailto:author@example.com"' in index
    post = (project / "public" / "exporting-fmus-from-rust" / "index.html").read_text(
        encoding="utf-8"
    )
    assert '<h2 id="why-rust">Why Rust</h2>' in post
    assert 'href="#the-generated-model-description"' in post


def test_cli_build_reports_failures(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    (project / "content" / "broken.md").write_text("+++\ntitle = \n+++\n", encoding="utf-8")
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "File: content/broken.md" in result.output
    assert "invalid TOML front matter" in result.output


def test_cli_build_reports_non_utf8_file(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    (project / "content" / "latin1.md").write_bytes(b'+++\ntitle = "Caf\xe9"\n+++\n')
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "File: content/latin1.md" in result.output
    assert "not valid UTF-8" in result.output


def test_cli_build_and_serve_options(monkeypatch, tmp_path):
    runner = CliRunner()
    monkeypatch.chdir(tmp_path)
    called = {}

    def fake_build_site(root, include_drafts=False, base_url=None):
        called["build"] = (include_drafts, base_url)
        return BuildResult(pages=[], output_dir=root / "public", config={}, feeds=[])

    class DummyServer:
        def __init__(self, root, http_port=None, ws_port=None):
            called["port"] = http_port
            called["ws_port"] = ws_port

        def start(self, include_drafts=False):
            called["serve_drafts"] = include_drafts

    monkeypatch.setattr("quire.build.build_site", fake_build_site)
    monkeypatch.setattr("quire.server.DevServer", DummyServer)

    result = runner.invoke(
        cli, ["build", "--drafts", "--base-url", "https://example.com"], catch_exceptions=False
    )
    assert result.exit_code == 0
    assert called["build"] == (True, "https://example.com")

    result = runner.invoke(
        cli, ["serve", "--drafts", "--port", "5050", "--ws-port", "5051"], catch_exceptions=False
    )
    assert result.exit_code == 0
    assert called["port"] == 5050
    assert called["ws_port"] == 5051
    assert called["serve_drafts"] is True


def test_cli_check(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)
    runner = CliRunner()

    result = runner.invoke(cli, ["check"])
    assert result.exit_code == 0
    assert "All content files are valid" in result.output

    (project / "content" / "undated.md").write_text('+++\ntitle = "Undated"\n+++\nBody\n', encoding="utf-8")
    result = runner.invoke(cli, ["check"])
    assert result.exit_code == 1
    assert "content/undated.md: date: Field required" in result.output
    assert "1 error(s) found" in result.output


def test_cli_convert(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    monkeypatch.chdir(project)
    runner = CliRunner()
    post = project / "content" / "2024-05-12-exporting-fmus-from-rust.md"
    body_before = post.read_text(encoding="utf-8").split("+++\n", 2)[2]

    result = runner.invoke(cli, ["convert", "--to", "yaml"])
    assert result.exit_code == 0
    assert "2 file(s) converted to yaml" in result.output
    text = post.read_text(encoding="utf-8")
    assert text.startswith("---\ntitle: Exporting FMUs from Rust\n")
    assert text.split("---\n", 2)[2] == body_before

    # the converted site still builds the same pages
    result = runner.invoke(cli, ["check"])
    assert result.exit_code == 0

    result = runner.invoke(cli, ["convert", "--to", "toml"])
    assert "2 file(s) converted to toml" in result.output


def test_cli_convert_requires_content(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["convert", "--to", "toml"])
    assert result.exit_code != 0
    assert "No content/ directory" in result.output


def test_cli_post_creates_file(monkeypatch, tmp_path):
    project = scaffold(tmp_path)
    (project / "content" / "notes").mkdir()
    (project / "content" / "notes" / "_index.md").write_text('+++\ntitle = "Notes"\n+++\n', encoding="utf-8")
    monkeypatch.chdir(project)

    class Answer:
        def __init__(self, value):
            self.value = value

        def ask(self):
            return self.value

    monkeypatch.setattr("quire.cli.questionary.select", lambda *a, **k: Answer("notes"))
    monkeypatch.setattr("quire.cli.questionary.text", lambda *a, **k: Answer("  Hello World "))
    monkeypatch.setattr("quire.cli.questionary.confirm", lambda *a, **k: Answer(True))

    result = CliRunner().invoke(cli, ["post"], catch_exceptions=False)
    assert result.exit_code == 0
    created = project / "content" / "notes" / f"{date.today().isoformat()}-hello-world.md"
    assert created.exists()
    assert f"Created content/notes/{created.name}" in result.output

    result = CliRunner().invoke(cli, ["check"])
    assert result.exit_code == 0

    monkeypatch.setattr("quire.cli.questionary.select", lambda *a, **k: Answer(None))
    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code == 1


def test_create_post_rejects_duplicate_slug(tmp_path):
    path = _create_post(tmp_path, "Hello World", date(2024, 5, 12), draft=True)
    assert path.name == "2024-05-12-hello-world.md"
    assert path.read_text(encoding="utf-8") == (
        '+++\ntitle = "Hello World"\ndate = 2024-05-12\ndraft = true\n+++\n\n'
    )
    assert _get_existing_slugs(tmp_path) == {"hello-world": path}
    with pytest.raises(click.ClickException, match="already exists"):
        _create_post(tmp_path, "Hello, world!", date(2024, 6, 1))


def test_create_post_honors_front_matter_slug(tmp_path):
    (tmp_path / "old.md").write_text(
        '+++\ntitle = "Old"\ndate = 2024-02-01\nslug = "hello"\n+++\nBody\n', encoding="utf-8"
    )
    (tmp_path / "broken.md").write_text("+++\ntitle = \n+++\n", encoding="utf-8")
    assert _get_existing_slugs(tmp_path) == {
        "broken": tmp_path / "broken.md",
        "hello": tmp_path / "old.md",
    }
    with pytest.raises(click.ClickException, match="old.md"):
        _create_post(tmp_path, "Hello", date(2024, 6, 1))


def test_get_sections(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a" / "deep").mkdir(parents=True)
    (tmp_path / "_index.md").write_text("", encoding="utf-8")
    (tmp_path / "b" / "_index.md").write_text("", encoding="utf-8")
    (tmp_path / "a" / "deep" / "_index.md").write_text("", encoding="utf-8")
    assert _get_sections(tmp_path) == [". (root)", "a/deep", "b"]


def test_module_main_entrypoint():
    from quire.__main__ import main

    assert callable(main)


def test_main_reports_quire_errors(monkeypatch, capsys):
    import quire.cli as cli_mod
    from quire.errors import ConfigError

    def failing_cli():
        raise ConfigError(Path("quire.yaml"), "configuration must be a mapping")

    monkeypatch.setattr(cli_mod, "cli", failing_cli)
    with pytest.raises(SystemExit) as excinfo:
        cli_mod.main()
    assert excinfo.value.code == 1
    assert "configuration must be a mapping" in capsys.readouterr().err
