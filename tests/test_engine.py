"""Tests for JournalEngine reads and journal:// resources."""

import logging
from pathlib import Path

import httpx
import pytest

from private_journal.addressing import encode_uri, parse_uri
from private_journal.engine import JournalEngine
from private_journal.errors import UsageError
from private_journal.models import Locality

from conftest import RecordingTransport


class TestEngineBasics:
    """Tests for engine wiring."""

    def test_local_mode_by_default(self, engine):
        assert engine.mode.name == "local"
        assert not engine.remote_only

    def test_mode_logged(self, config, resolver, caplog):
        with caplog.at_level(logging.INFO, logger="private_journal"):
            JournalEngine(config, resolver=resolver)
        assert "Journal storage mode: local" in caplog.text

    @pytest.mark.asyncio
    async def test_write_and_search(self, engine):
        paths = await engine.write_thoughts({
            "technical_insights": "pytest fixtures compose nicely",
            "project_notes": "the release script needs a dry run flag",
        })
        assert len(paths) == 2

        results = await engine.search("release script dry run", min_score=0.0)
        assert results[0].identifier in paths
        assert "release script" in results[0].text


class TestReadEntry:
    """Tests for reading by path in local modes."""

    @pytest.mark.asyncio
    async def test_read_written_entry(self, engine):
        [path] = await engine.write_entry("read me back")
        assert (await engine.read_entry(path)).endswith("read me back\n")

    @pytest.mark.asyncio
    async def test_unsafe_path_rejected(self, engine):
        with pytest.raises(UsageError, match="Access denied"):
            await engine.read_entry("/etc/passwd")
        with pytest.raises(UsageError):
            await engine.read_entry("relative.md")

    @pytest.mark.asyncio
    async def test_missing_entry(self, engine, tmp_path):
        assert await engine.read_entry(str(tmp_path / "missing.md")) is None


class TestResources:
    """Tests for journal:// resources."""

    @pytest.mark.asyncio
    async def test_list_resources(self, engine):
        await engine.write_thoughts({"feelings": "steady", "project_notes": "ship it"})

        resources = await engine.list_resources()

        assert len(resources) == 2
        localities = {parse_uri(r["uri"])[0] for r in resources}
        assert localities == {Locality.PROJECT, Locality.USER}
        for resource in resources:
            assert resource["mimeType"] == "text/markdown"
            assert resource["name"].startswith("Journal Entry - ")

    @pytest.mark.asyncio
    async def test_resource_limit(self, engine):
        for i in range(4):
            await engine.write_entry(f"entry {i}")
        assert len(await engine.list_resources(limit=3)) == 3

    @pytest.mark.asyncio
    async def test_read_resource(self, engine):
        await engine.write_entry("through a uri")
        [resource] = await engine.list_resources()

        content = await engine.read_resource(resource["uri"])
        assert content.endswith("through a uri\n")

    @pytest.mark.asyncio
    async def test_read_resource_bad_uri(self, engine):
        with pytest.raises(UsageError):
            await engine.read_resource("journal://elsewhere/abc")

    @pytest.mark.asyncio
    async def test_read_resource_unsafe_path(self, engine):
        with pytest.raises(UsageError, match="Access denied"):
            await engine.read_resource(encode_uri("/etc/shadow", Locality.PROJECT))

    @pytest.mark.asyncio
    async def test_read_resource_nul_byte(self, engine, tmp_path):
        with pytest.raises(UsageError, match="Access denied"):
            await engine.read_resource(encode_uri(f"{tmp_path}/a\x00b.md", Locality.PROJECT))
        with pytest.raises(UsageError, match="Access denied"):
            await engine.read_entry(f"{tmp_path}/a\x00b.md")

    @pytest.mark.asyncio
    async def test_read_resource_missing(self, engine, tmp_path):
        uri = encode_uri(str(tmp_path / "gone.md"), Locality.USER)
        assert await engine.read_resource(uri) is None

    @pytest.mark.asyncio
    async def test_remote_only_resources(self, engine_factory, remote_only_config):
        def server(request):
            if request.url.path.endswith("/entries"):
                return httpx.Response(200, json={"entries": [{"id": "e-7", "content": "remote", "timestamp": 0}]})
            return httpx.Response(200, json={"id": "e-7", "content": "remote body"})

        engine = engine_factory(remote_only_config, RecordingTransport(server))
        [resource] = await engine.list_resources()
        content = await engine.read_resource(resource["uri"])
        await engine.aclose()

        assert parse_uri(resource["uri"]) == (Locality.PROJECT, "e-7")
        assert content == "remote body"

    @pytest.mark.asyncio
    async def test_resources_written_to_disk_use_real_paths(self, engine):
        [path] = await engine.write_entry("path check")
        [resource] = await engine.list_resources()
        assert Path(parse_uri(resource["uri"])[1]) == Path(path)
