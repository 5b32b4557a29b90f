"""Tests for the catalog writer and loader."""

import pytest
import yaml

from mcpkit.discovery import ActionCatalog
from mcpkit.exceptions import SchemaValidationFailed
from mcpkit.generator import CATALOG_FILENAME, CatalogWriter, get_server_dir, load_catalog
from mcpkit.utils import domain_slug

CATALOG = ActionCatalog.model_validate(
    {
        "actions": [
            {
                "name": "view_comments",
                "description": "View comments for a story",
                "parameters": [{"name": "storyTitle", "type": "string", "description": "Story title", "required": True}],
                "steps": ["Find the story titled {storyTitle}", "Click its comments link"],
                "extractionSchema": {"comments": "array of {author, text}", "count": "number"},
            },
            {
                "name": "get_top_stories",
                "description": "Read the front page",
                "steps": ["Go to the front page"],
            },
        ]
    }
)


class TestDomainSlug:
    @pytest.mark.parametrize(
        ("domain", "expected"),
        [
            ("news.ycombinator.com", "news_ycombinator_com"),
            ("My-Site.io", "my_site_io"),
            ("...", "site"),
        ],
    )
    def test_slug(self, domain, expected):
        assert domain_slug(domain) == expected


class TestCatalogWriter:
    def test_layout(self, tmp_path):
        path = CatalogWriter(tmp_path).write("news.ycombinator.com", "https://news.ycombinator.com/", CATALOG)

        assert path == tmp_path / "news_ycombinator_com_mcp_server" / CATALOG_FILENAME
        assert path.parent == get_server_dir(tmp_path, "news.ycombinator.com")
        assert path.exists()

    def test_content(self, tmp_path):
        path = CatalogWriter(tmp_path).write("news.ycombinator.com", "https://news.ycombinator.com/", CATALOG)
        data = yaml.safe_load(path.read_text())

        assert list(data)[:3] == ["domain", "url", "generated_at"]
        assert data["domain"] == "news.ycombinator.com"
        assert [a["name"] for a in data["actions"]] == ["view_comments", "get_top_stories"]
        assert list(data["actions"][0]["extractionSchema"]) == ["comments", "count"]
        assert data["actions"][1]["parameters"] == []

    def test_overwrites_previous_catalog(self, tmp_path):
        writer = CatalogWriter(tmp_path)
        writer.write("a.com", "https://a.com/", CATALOG)
        smaller = ActionCatalog(actions=CATALOG.actions[:1])
        path = writer.write("a.com", "https://a.com/", smaller)

        _, _, loaded = load_catalog(path)
        assert len(loaded.actions) == 1


class TestLoadCatalog:
    def test_round_trip(self, tmp_path):
        path = CatalogWriter(tmp_path).write("news.ycombinator.com", "https://news.ycombinator.com/", CATALOG)

        domain, url, catalog = load_catalog(path)

        assert domain == "news.ycombinator.com"
        assert url == "https://news.ycombinator.com/"
        assert catalog == CATALOG

    def test_accepts_server_directory(self, tmp_path):
        path = CatalogWriter(tmp_path).write("a.com", "https://a.com/", CATALOG)
        assert load_catalog(path.parent)[0] == "a.com"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "nope.yaml")

    def test_invalid_action(self, tmp_path):
        path = tmp_path / CATALOG_FILENAME
        path.write_text(yaml.safe_dump({"domain": "a.com", "url": "https://a.com/", "actions": [{"name": "x", "steps": []}]}))

        with pytest.raises(SchemaValidationFailed) as exc_info:
            load_catalog(path)
        assert exc_info.value.path == "actions.0.description"

    def test_missing_domain(self, tmp_path):
        path = tmp_path / CATALOG_FILENAME
        path.write_text(yaml.safe_dump({"url": "https://a.com/", "actions": []}))
        with pytest.raises(SchemaValidationFailed):
            load_catalog(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / CATALOG_FILENAME
        path.write_text("- just\n- a list\n")
        with pytest.raises(SchemaValidationFailed):
            load_catalog(path)
