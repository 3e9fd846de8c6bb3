from datetime import date, datetime, timezone

import pytest

from quire.errors import SchemaError
from quire.schema import PostRecord, SectionRecord, SiteRecord, validate_record


def site_frontmatter(**overrides):
    data = {
        "title": "About",
        "page_template": "blog-page.html",
        "extra": {
            "interests": ["FMI", "Rust", "Co-simulation"],
            "education": {
                "courses": [
                    {"course": "MSc", "institution": "Tech", "year": 2019},
                    {"course": "BSc", "institution": "Tech", "year": 2017},
                ]
            },
            "avatar_icons": [
                {"icon": "github", "link": "https://github.com/someone"},
                {"icon": "email", "link": "mailto:me@example.com"},
            ],
        },
    }
    data.update(overrides)
    return data


def test_site_record_keeps_order_and_cardinality():
    record = validate_record(site_frontmatter(), "site")
    assert isinstance(record, SiteRecord)
    assert record.extra.interests == ["FMI", "Rust", "Co-simulation"]
    assert [c.year for c in record.extra.education.courses] == [2019, 2017]
    assert [i.icon for i in record.extra.avatar_icons] == ["github", "email"]
    assert record.extra.avatar_icons[0].link == "https://github.com/someone"


def test_site_record_defaults_for_empty_extra():
    record = validate_record({"title": "About", "page_template": "p.html"}, "site")
    assert record.extra.interests == []
    assert record.extra.education.courses == []
    assert record.extra.avatar_icons == []


def test_site_record_keeps_unknown_extra_keys():
    data = site_frontmatter()
    data["extra"]["avatar"] = "/images/me.png"
    record = validate_record(data, "site")
    assert record.extra.avatar == "/images/me.png"


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"title": ""}, "title"),
        ({"title": "   "}, "title"),
        ({"page_template": ""}, "page_template"),
    ],
)
def test_site_record_required_fields(overrides, expected):
    with pytest.raises(SchemaError) as excinfo:
        validate_record(site_frontmatter(**overrides), "site")
    assert any(problem.startswith(expected) for problem in excinfo.value.problems)


def test_site_record_missing_page_template():
    data = site_frontmatter()
    del data["page_template"]
    with pytest.raises(SchemaError, match="page_template"):
        validate_record(data, "site")


def test_course_year_must_have_four_digits():
    data = site_frontmatter()
    data["extra"]["education"]["courses"][0]["year"] = 19
    with pytest.raises(SchemaError) as excinfo:
        validate_record(data, "site")
    assert excinfo.value.problems[0].startswith("extra.education.courses.0.year")


@pytest.mark.parametrize(
    "link",
    ["github.com/someone", "ftp://example.com", "https://", "mailto:nobody"],
)
def test_avatar_link_must_be_url(link):
    data = site_frontmatter()
    data["extra"]["avatar_icons"][0]["link"] = link
    with pytest.raises(SchemaError, match="extra.avatar_icons.0.link"):
        validate_record(data, "site")


def test_section_record_page_template_optional():
    record = validate_record({"title": "Blog"}, "section")
    assert isinstance(record, SectionRecord)
    assert record.page_template is None
    assert record.sort_by == "date"


def test_post_record():
    record = validate_record({"title": "Post", "date": "2024-05-12"}, "post")
    assert isinstance(record, PostRecord)
    assert record.date == date(2024, 5, 12)
    assert record.draft is False


def test_post_record_accepts_datetime():
    stamp = datetime(2024, 5, 12, 8, 30, tzinfo=timezone.utc)
    record = validate_record({"title": "Post", "date": stamp}, "post")
    assert record.date == date(2024, 5, 12)


def test_post_record_requires_title_and_date():
    with pytest.raises(SchemaError) as excinfo:
        validate_record({}, "post")
    locations = {problem.split(":")[0] for problem in excinfo.value.problems}
    assert locations == {"title", "date"}

    with pytest.raises(SchemaError, match="date"):
        validate_record({"title": "Post", "date": "not a date"}, "post")


def test_section_record_has_no_pagination():
    assert "paginate_by" not in SectionRecord.model_fields
    # unrecognized section keys are kept as-is, never validated
    record = validate_record({"title": "Blog", "paginate_by": 0}, "section")
    assert record.model_extra == {"paginate_by": 0}
