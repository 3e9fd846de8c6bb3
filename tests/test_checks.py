from pathlib import Path

from quire.checks import Issue, check_site

SITE_INDEX = """+++
title = "About"
page_template = "blog-page.html"

[[extra.avatar_icons]]
icon = "github"
link = "https://github.com/someone"
+++
About me.
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_valid_site_has_no_issues(tmp_path):
    write(tmp_path / "content" / "_index.md", SITE_INDEX)
    write(
        tmp_path / "content" / "post.md",
        '+++\ntitle = "Post"\ndate = 2024-05-12\n+++\nBody.\n',
    )
    assert check_site(tmp_path) == []


def test_missing_content_dir(tmp_path):
    issues = check_site(tmp_path)
    assert issues == [Issue(tmp_path / "content", "content directory does not exist")]
    assert issues[0].is_error


def test_missing_site_record(tmp_path):
    write(tmp_path / "content" / "post.md", '---\ntitle: Post\ndate: 2024-05-12\n---\nBody.\n')
    issues = check_site(tmp_path)
    assert [i.message for i in issues] == ["site record (_index.md) is missing"]


def test_collects_every_problem(tmp_path):
    content = tmp_path / "content"
    write(
        content / "_index.md",
        '+++\ntitle = "About"\n\n[[extra.avatar_icons]]\nicon = "github"\nlink = "nope"\n+++\nHi\n',
    )
    write(content / "bad-toml.md", "+++\ntitle = \n+++\nBody\n")
    write(content / "no-block.md", "Just text\n")
    write(content / "undated.md", '+++\ntitle = "Undated"\n+++\nBody\n')
    write(content / "empty.md", '+++\ntitle = "Empty"\ndate = 2024-01-01\n+++\n\n')

    issues = check_site(tmp_path)
    by_file: dict[str, list[str]] = {}
    for issue in issues:
        by_file.setdefault(issue.path.name, []).append(issue.message)

    site_problems = by_file["_index.md"]
    assert any(p.startswith("page_template") for p in site_problems)
    assert any(p.startswith("extra.avatar_icons.0.link") for p in site_problems)
    assert by_file["bad-toml.md"][0].startswith("invalid TOML front matter")
    assert by_file["no-block.md"] == ["missing front matter block"]
    assert by_file["undated.md"][0].startswith("date")
    assert by_file["empty.md"] == ["body is empty"]

    empty = next(i for i in issues if i.path.name == "empty.md")
    assert not empty.is_error


def test_duplicate_slugs_within_a_section(tmp_path):
    content = tmp_path / "content"
    write(content / "_index.md", SITE_INDEX)
    write(content / "2024-01-01-hello.md", '+++\ntitle = "One"\n+++\nBody\n')
    write(content / "hello.md", '+++\ntitle = "Two"\ndate = 2024-02-01\n+++\nBody\n')
    write(
        content / "notes" / "hello.md",
        '+++\ntitle = "Other section"\ndate = 2024-02-01\n+++\nBody\n',
    )

    issues = check_site(tmp_path)
    assert issues == [
        Issue(content / "hello.md", "slug 'hello' is already used by 2024-01-01-hello.md")
    ]


def test_non_utf8_file_is_reported_and_checking_continues(tmp_path):
    content = tmp_path / "content"
    write(content / "_index.md", SITE_INDEX)
    (content / "a-latin1.md").write_bytes(b'+++\ntitle = "Caf\xe9"\n+++\nBody\n')
    write(content / "b-undated.md", '+++\ntitle = "Undated"\n+++\nBody\n')

    issues = check_site(tmp_path)
    assert [i.path.name for i in issues] == ["a-latin1.md", "b-undated.md"]
    assert issues[0].message.startswith("not valid UTF-8")
