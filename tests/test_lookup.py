"""Tests for metadata-backed permission lookups."""

import json
from pathlib import Path

import pytest
import requests

from conftest import FIXTURES
from graphperm.errors import CommandNotFoundError, PermissionLookupError
from graphperm.lookup.metadata import (
    HttpMetadataLookup,
    MetadataFileLookup,
    build_index,
    create_lookup,
)


class TestBuildIndex:
    """Indexing of metadata records."""

    def test_records_for_same_command_concatenated(self):
        records = [
            {"Command": "Get-MgUser", "ApiVersion": "v1.0", "Permissions": [{"Name": "A"}]},
            {"Command": "Get-MgUser", "ApiVersion": "v1.0", "Permissions": [{"Name": "B"}, {"Name": "A"}]},
        ]
        index = build_index(records)
        assert [p.name for p in index[("get-mguser", "v1.0")]] == ["A", "B", "A"]

    def test_missing_api_version_defaults(self):
        index = build_index([{"Command": "Get-MgUser", "Permissions": []}])
        assert ("get-mguser", "v1.0") in index

    def test_not_a_list(self):
        with pytest.raises(ValueError):
            build_index({"Command": "Get-MgUser"})

    def test_record_without_command(self):
        with pytest.raises(ValueError):
            build_index([{"Permissions": []}])

    def test_permission_without_name(self):
        with pytest.raises(ValueError):
            build_index([{"Command": "Get-MgUser", "Permissions": [{"Description": "x"}]}])


class TestMetadataFileLookup:
    """JSON and YAML metadata files."""

    def test_json_lookup(self):
        lookup = MetadataFileLookup(FIXTURES / "metadata.json")
        names = [p.name for p in lookup.lookup("Get-MgGroup")]
        assert names == ["GroupMember.Read.All", "Group.Read.All"]

    def test_lookup_case_insensitive(self):
        lookup = MetadataFileLookup(FIXTURES / "metadata.json")
        assert lookup.lookup("get-mggroup")

    def test_unknown_command(self):
        lookup = MetadataFileLookup(FIXTURES / "metadata.json")
        with pytest.raises(CommandNotFoundError) as exc:
            lookup.lookup("Get-MgNothing")
        assert exc.value.command_name == "Get-MgNothing"

    def test_unknown_version(self):
        lookup = MetadataFileLookup(FIXTURES / "metadata.json")
        with pytest.raises(CommandNotFoundError):
            lookup.lookup("Get-MgGroup", "beta")

    def test_yaml_file(self, tmp_path: Path):
        path = tmp_path / "metadata.yaml"
        path.write_text(
            "- Command: Get-MgApplication\n"
            "  ApiVersion: v1.0\n"
            "  Permissions:\n"
            "    - Name: Application.Read.All\n"
            "      FullDescription: Allows the app to read all applications.\n"
        )
        lookup = MetadataFileLookup(path)
        [entry] = lookup.lookup("Get-MgApplication")
        assert entry.name == "Application.Read.All"
        assert entry.full_description == "Allows the app to read all applications."

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(PermissionLookupError):
            MetadataFileLookup(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(PermissionLookupError):
            MetadataFileLookup(path)


class _FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class TestHttpMetadataLookup:
    """Metadata fetched over HTTP."""

    def test_fetch_and_lookup(self, monkeypatch):
        payload = json.loads((FIXTURES / "metadata.json").read_text())
        seen = {}

        def fake_get(url, timeout):
            seen["url"] = url
            seen["timeout"] = timeout
            return _FakeResponse(payload)

        monkeypatch.setattr(requests, "get", fake_get)
        lookup = HttpMetadataLookup("https://example.test/metadata.json", timeout=5)

        assert seen == {"url": "https://example.test/metadata.json", "timeout": 5}
        assert lookup.lookup("New-MgGroupMember")[0].name == "GroupMember.ReadWrite.All"

    def test_http_error(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse([], status_code=503))
        with pytest.raises(PermissionLookupError):
            HttpMetadataLookup("https://example.test/metadata.json")

    def test_connection_error(self, monkeypatch):
        def fail(url, timeout):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(requests, "get", fail)
        with pytest.raises(PermissionLookupError):
            HttpMetadataLookup("https://example.test/metadata.json")

    def test_malformed_document(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse({"oops": True}))
        with pytest.raises(PermissionLookupError):
            HttpMetadataLookup("https://example.test/metadata.json")


class TestCreateLookup:
    """Source dispatch."""

    def test_file_source(self):
        assert isinstance(create_lookup(str(FIXTURES / "metadata.json")), MetadataFileLookup)

    def test_url_source(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse([]))
        assert isinstance(create_lookup("http://example.test/m.json"), HttpMetadataLookup)
