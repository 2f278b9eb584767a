"""
Tests for the local query adapter.
"""

import functools
import json
import logging

import pytest
import yaml

from plugins.content_fields.nodes import FILE_TYPE, MARKDOWN_TYPE, NodeStore
from plugins.content_fields.plugin import on_create_node
from plugins.create_pages.pipeline import MARKDOWN_QUERY, PRODUCTS_QUERY, SHEET_QUERY
from plugins.create_pages.sources import (
    LocalQueryEngine,
    parse_date,
    resolvable_extensions,
    sort_and_format_rows,
    split_front_matter,
)


def write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf8")
    return path


class TestFrontMatter:
    """Test for front matter splitting."""

    def test_split(self):
        """Test: YAML front matter and body are separated."""
        fm, body = split_front_matter("---\ntitle: Hi\ntemplate: Page\n---\n# Body\n")
        assert fm == {"title": "Hi", "template": "Page"}
        assert body == "# Body\n"

    def test_no_front_matter(self):
        """Test: text without front matter is returned as the body."""
        assert split_front_matter("# Plain") == ({}, "# Plain")

    def test_invalid_yaml_raises(self):
        """Test: malformed YAML raises a YAMLError."""
        with pytest.raises(yaml.YAMLError):
            split_front_matter("---\ntitle: [unclosed\n---\nbody")

    def test_non_mapping_raises(self):
        """Test: front matter that is not a mapping is rejected."""
        with pytest.raises(yaml.YAMLError):
            split_front_matter("---\n- a\n- b\n---\nbody")


class TestSourceContent:
    """Test for sourcing markdown content into nodes."""

    def test_nodes_and_fields(self, tmp_path):
        """Test: sourcing creates file and markdown nodes and runs hooks."""
        content = tmp_path / "content"
        write(content / "pages" / "home.md", "---\ntemplate: HomePage\n---\nWelcome")
        write(content / "articles" / "one.md", "---\ntitle: First Post\ntemplate: Article\n---\nText")

        store = NodeStore()
        engine = LocalQueryEngine(store)
        count = engine.source_content(content, hooks=[on_create_node])

        assert count == 2
        assert len(store.nodes_of_type(FILE_TYPE)) == 2
        result = engine(MARKDOWN_QUERY)
        assert result.errors == []
        by_id = {r["id"]: r for r in result.data["markdown"]}
        assert by_id["markdown:pages/home.md"]["fields"] == {"slug": "/", "contentType": "pages"}
        assert by_id["markdown:articles/one.md"]["fields"]["slug"] == "/articles/first-post/"
        assert by_id["markdown:articles/one.md"]["frontmatter"] == {
            "template": "Article",
            "title": "First Post",
        }

    def test_static_dir_hook(self, tmp_path):
        """Test: a hook bound to static_dir rewrites front matter images."""
        write(tmp_path / "static" / "img" / "a.png", "png")
        content = tmp_path / "content"
        write(content / "articles" / "one.md", "---\nimage: /img/a.png\n---\n")

        store = NodeStore()
        engine = LocalQueryEngine(store)
        hook = functools.partial(on_create_node, static_dir=tmp_path / "static")
        engine.source_content(content, hooks=[hook])

        node = store.get_node("markdown:articles/one.md")
        assert node.frontmatter["image"] == "../../static/img/a.png"

    def test_front_matter_errors_reported_by_query(self, tmp_path):
        """Test: invalid front matter surfaces as markdown query errors."""
        content = tmp_path / "content"
        write(content / "bad.md", "---\ntitle: [oops\n---\n")
        write(content / "good.md", "---\ntemplate: Page\n---\n")

        engine = LocalQueryEngine(NodeStore())
        engine.source_content(content, hooks=[on_create_node])
        result = engine(MARKDOWN_QUERY)

        assert len(result.errors) == 1
        assert "bad.md" in result.errors[0]
        assert [r["id"] for r in result.data["markdown"]] == ["markdown:good.md"]

    def test_markdown_limit(self, tmp_path):
        """Test: the markdown query honours its limit."""
        content = tmp_path / "content"
        for i in range(3):
            write(content / f"p{i}.md", "")
        engine = LocalQueryEngine(NodeStore())
        engine.source_content(content, hooks=[on_create_node])

        result = engine({"source": "markdown", "limit": 2})
        assert len(result.data["markdown"]) == 2

    def test_missing_content_dir(self, tmp_path):
        """Test: a missing content directory sources nothing."""
        store = NodeStore()
        assert LocalQueryEngine(store).source_content(tmp_path / "nope") == 0
        assert len(store) == 0

    def test_non_markdown_nodes_get_no_fields(self, tmp_path):
        """Test: file nodes created while sourcing carry no fields."""
        content = tmp_path / "content"
        write(content / "x.md", "")
        store = NodeStore()
        LocalQueryEngine(store).source_content(content, hooks=[on_create_node])

        assert store.get_node("file:x.md").fields == {}
        assert store.get_node("markdown:x.md").internal.type == MARKDOWN_TYPE


class TestFeeds:
    """Test for the product feed and spreadsheet queries."""

    def test_products_default_empty(self):
        """Test: without a feed the products query is empty."""
        result = LocalQueryEngine(NodeStore())(PRODUCTS_QUERY)
        assert result.data == {"products": []}
        assert result.errors == []

    def test_products_from_json(self, tmp_path):
        """Test: a JSON feed object yields product handles."""
        feed = write(
            tmp_path / "products.json",
            json.dumps({"products": [{"handle": "mug", "title": "Mug"}, {"handle": "cap"}]}),
        )
        result = LocalQueryEngine(NodeStore(), products_file=feed)(PRODUCTS_QUERY)
        assert result.data == {"products": [{"handle": "mug"}, {"handle": "cap"}]}

    def test_products_list_feed(self, tmp_path):
        """Test: a bare JSON list is accepted as a feed."""
        feed = write(tmp_path / "products.json", json.dumps([{"handle": "mug"}]))
        result = LocalQueryEngine(NodeStore(), products_file=feed)(PRODUCTS_QUERY)
        assert result.data == {"products": [{"handle": "mug"}]}

    def test_products_extension_must_be_resolvable(self, tmp_path):
        """Test: feeds without a resolvable extension are reported as errors."""
        assert resolvable_extensions() == [".json"]
        feed = write(tmp_path / "products.yaml", "- handle: mug\n")
        result = LocalQueryEngine(NodeStore(), products_file=feed)(PRODUCTS_QUERY)
        assert result.data is None
        assert result.errors

    def test_products_missing_file(self, tmp_path):
        """Test: a missing feed file is reported as an error."""
        result = LocalQueryEngine(NodeStore(), products_file=tmp_path / "x.json")(
            PRODUCTS_QUERY
        )
        assert result.data is None
        assert result.errors

    def test_sheet_csv_sorted_and_formatted(self, tmp_path):
        """Test: CSV rows are sorted newest first and dates formatted."""
        sheet = write(
            tmp_path / "links.csv",
            "articleid,author,dateadded\n"
            "a1,Ann,2024-01-05\n"
            "a2,Bob,2024-03-01\n"
            "a3,Cy,not a date\n"
            "a4,Di,2023-12-31\n",
        )
        result = LocalQueryEngine(NodeStore(), sheet_file=sheet)(SHEET_QUERY)

        rows = result.data["rows"]
        assert [r["articleid"] for r in rows] == ["a2", "a1", "a4", "a3"]
        assert rows[0]["dateadded"] == "Friday Mar 01, 2024"
        assert rows[3]["dateadded"] == "not a date"

    def test_sheet_json_rows(self, tmp_path):
        """Test: a JSON sheet export is read and formatted."""
        sheet = write(
            tmp_path / "links.json",
            json.dumps({"rows": [{"articleid": 1, "dateadded": "2024-01-01"}]}),
        )
        result = LocalQueryEngine(NodeStore(), sheet_file=sheet)(SHEET_QUERY)
        assert result.data["rows"][0]["articleid"] == 1
        assert result.data["rows"][0]["dateadded"] == "Monday Jan 01, 2024"

    def test_unknown_source(self):
        """Test: an unknown query source is reported as an error."""
        result = LocalQueryEngine(NodeStore())({"source": "comments"})
        assert result.data is None
        assert "comments" in result.errors[0]

    def test_sort_keeps_order_for_equal_dates(self):
        """Test: rows with equal dates keep their original order."""
        rows = [
            {"articleid": "x", "dateadded": "2024-01-01"},
            {"articleid": "y", "dateadded": "2024-01-01"},
        ]
        assert [r["articleid"] for r in sort_and_format_rows(rows)] == ["x", "y"]


class TestSheetDates:
    """Test for spreadsheet date parsing."""

    def test_trailing_z_is_utc(self):
        """Test: ISO timestamps with a trailing Z parse on every supported Python."""
        parsed = parse_date("2024-02-01T10:00:00Z")
        assert parsed is not None
        assert parsed.utcoffset().total_seconds() == 0
        assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2024, 2, 1, 10)

    def test_us_style_dates(self):
        """Test: m/d/Y dates as written by spreadsheet exports are accepted."""
        parsed = parse_date("5/1/2020")
        assert (parsed.year, parsed.month, parsed.day) == (2020, 5, 1)
        assert parse_date("12/31/2023 08:30:00").hour == 8

    def test_unparseable_dates(self):
        """Test: junk and empty values give None."""
        assert parse_date("not a date") is None
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_mixed_formats_sort_together(self):
        """Test: Z-suffixed, US-style and plain ISO dates sort as one timeline."""
        rows = [
            {"articleid": "iso", "dateadded": "2024-01-05"},
            {"articleid": "utc", "dateadded": "2024-02-01T10:00:00Z"},
            {"articleid": "us", "dateadded": "5/1/2020"},
        ]
        out = sort_and_format_rows(rows)

        assert [r["articleid"] for r in out] == ["utc", "iso", "us"]
        assert out[0]["dateadded"] == "Thursday Feb 01, 2024"
        assert out[2]["dateadded"] == "Friday May 01, 2020"

    def test_unparseable_rows_are_logged(self, caplog):
        """Test: rows whose date cannot be parsed are reported and sorted last."""
        rows = [
            {"articleid": "bad", "dateadded": "sometime"},
            {"articleid": "good", "dateadded": "2024-01-05"},
        ]
        with caplog.at_level(logging.WARNING, logger="mkdocs.plugins.create_pages"):
            out = sort_and_format_rows(rows)

        assert [r["articleid"] for r in out] == ["good", "bad"]
        assert out[1]["dateadded"] == "sometime"
        assert "sometime" in caplog.text
        assert "'bad'" in caplog.text
