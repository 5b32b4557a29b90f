"""Tests for credential lookup through the 1Password CLI."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mcpkit.config import VaultSettings
from mcpkit.credentials import NullVault, OnePasswordVault, get_vault
from mcpkit.exceptions import CredentialLookupFailed

OP_FIELDS = [
    {"id": "username", "type": "STRING", "purpose": "USERNAME", "label": "username", "value": "alice@example.com"},
    {"id": "password", "type": "CONCEALED", "purpose": "PASSWORD", "label": "password", "value": "hunter2"},
]


def fake_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    process.wait = AsyncMock(return_value=returncode)
    return process


class TestParseFields:
    """Test parsing of op JSON output."""

    def test_list_of_fields(self):
        credentials = OnePasswordVault._parse_fields(json.dumps(OP_FIELDS).encode())
        assert credentials.username == "alice@example.com"
        assert credentials.password.get_secret_value() == "hunter2"

    def test_password_is_not_in_repr(self):
        credentials = OnePasswordVault._parse_fields(json.dumps(OP_FIELDS).encode())
        assert "hunter2" not in repr(credentials)

    def test_missing_password(self):
        with pytest.raises(CredentialLookupFailed):
            OnePasswordVault._parse_fields(json.dumps(OP_FIELDS[:1]).encode())

    def test_empty_values(self):
        fields = [dict(f, value="") for f in OP_FIELDS]
        with pytest.raises(CredentialLookupFailed):
            OnePasswordVault._parse_fields(json.dumps(fields).encode())

    def test_malformed_json(self):
        with pytest.raises(CredentialLookupFailed):
            OnePasswordVault._parse_fields(b"[ERROR] not json")

    def test_undecodable_bytes(self):
        with pytest.raises(CredentialLookupFailed):
            OnePasswordVault._parse_fields(b"\xff\xfegarbage")


class TestLookup:
    """Test that every failure resolves to None."""

    @pytest.mark.anyio
    async def test_found(self):
        with patch("mcpkit.credentials.asyncio.create_subprocess_exec", AsyncMock(return_value=fake_process(json.dumps(OP_FIELDS).encode()))) as exec_mock:
            credentials = await OnePasswordVault(op_path="op").lookup("example.com")

        assert credentials is not None
        assert credentials.username == "alice@example.com"
        args = exec_mock.call_args[0]
        assert args[:4] == ("op", "item", "get", "example.com")
        assert "--reveal" in args
        assert "label=username,label=password" in args

    @pytest.mark.anyio
    async def test_item_not_found(self):
        process = fake_process(stderr=b'[ERROR] "example.com" isn\'t an item', returncode=1)
        with patch("mcpkit.credentials.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            assert await OnePasswordVault().lookup("example.com") is None

    @pytest.mark.anyio
    async def test_binary_missing(self):
        with patch("mcpkit.credentials.asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("op"))):
            assert await OnePasswordVault().lookup("example.com") is None

    @pytest.mark.anyio
    async def test_timeout(self):
        process = fake_process()
        process.communicate = AsyncMock(side_effect=TimeoutError())
        with patch("mcpkit.credentials.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            assert await OnePasswordVault(timeout=0.1).lookup("example.com") is None
        process.kill.assert_called_once()

    @pytest.mark.anyio
    async def test_malformed_output(self):
        with patch("mcpkit.credentials.asyncio.create_subprocess_exec", AsyncMock(return_value=fake_process(b"not json"))):
            assert await OnePasswordVault().lookup("example.com") is None

    @pytest.mark.anyio
    async def test_undecodable_output(self):
        with patch("mcpkit.credentials.asyncio.create_subprocess_exec", AsyncMock(return_value=fake_process(b"\xff\xfegarbage"))):
            assert await OnePasswordVault().lookup("example.com") is None

    @pytest.mark.anyio
    async def test_null_vault(self):
        assert await NullVault().lookup("example.com") is None


class TestGetVault:
    def test_disabled(self):
        assert isinstance(get_vault(VaultSettings(enabled=False)), NullVault)

    def test_enabled(self):
        vault = get_vault(VaultSettings(enabled=True, op_path="/usr/local/bin/op", timeout=3))
        assert isinstance(vault, OnePasswordVault)
        assert vault.op_path == "/usr/local/bin/op"
        assert vault.timeout == 3
