"""Tests for the automation handle and its lifecycle, with browser-use mocked."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import BaseModel, SecretStr

from mcpkit.browser import BrowserHandle, open_browser
from mcpkit.config import AppSettings
from mcpkit.exceptions import BrowserError, SessionProvisioningFailed
from mcpkit.sessions import RemoteSession


class Answer(BaseModel):
    value: str


def make_session(frame_url: str = "https://example.com/", evaluate_value=None) -> MagicMock:
    session = MagicMock()
    session.get_or_create_cdp_session = AsyncMock(return_value=MagicMock(session_id="sid-1"))
    send = session.cdp_client.send
    send.Page.enable = AsyncMock()
    send.Runtime.enable = AsyncMock()
    send.Page.navigate = AsyncMock(return_value={"frameId": "f1"})
    send.Page.getFrameTree = AsyncMock(return_value={"frameTree": {"frame": {"url": frame_url}}})
    send.Runtime.evaluate = AsyncMock(return_value={"result": {"value": evaluate_value}})
    session.start = AsyncMock()
    session.kill = AsyncMock()
    return session


def make_history(done: bool = True, final: str | None = "done") -> MagicMock:
    history = MagicMock()
    history.is_done.return_value = done
    history.final_result.return_value = final
    return history


class TestPageOperations:
    @pytest.mark.anyio
    async def test_goto_uses_session_scoped_navigation(self):
        session = make_session(evaluate_value=True)
        handle = BrowserHandle(session, MagicMock())

        await handle.goto("https://example.com/")

        navigate = session.cdp_client.send.Page.navigate
        assert navigate.call_args.kwargs["params"]["url"] == "https://example.com/"
        assert navigate.call_args.kwargs["session_id"] == "sid-1"

    @pytest.mark.anyio
    async def test_goto_error_text(self):
        session = make_session()
        session.cdp_client.send.Page.navigate.return_value = {"errorText": "net::ERR_NAME_NOT_RESOLVED"}

        with pytest.raises(BrowserError):
            await BrowserHandle(session, MagicMock()).goto("https://nope.invalid/")

    @pytest.mark.anyio
    async def test_current_url(self):
        handle = BrowserHandle(make_session(frame_url="https://example.com/login"), MagicMock())
        assert await handle.current_url() == "https://example.com/login"

    @pytest.mark.anyio
    async def test_current_url_unknown(self):
        session = make_session()
        session.cdp_client.send.Page.getFrameTree.side_effect = RuntimeError("target closed")
        assert await BrowserHandle(session, MagicMock()).current_url() == ""

    @pytest.mark.anyio
    async def test_page_text_truncated(self):
        handle = BrowserHandle(make_session(evaluate_value="x" * 50), MagicMock())
        assert await handle.page_text(limit=10) == "x" * 10

    @pytest.mark.anyio
    async def test_script_exception(self):
        session = make_session()
        session.cdp_client.send.Runtime.evaluate.return_value = {"exceptionDetails": {"text": "ReferenceError"}}
        with pytest.raises(BrowserError):
            await BrowserHandle(session, MagicMock()).evaluate("nope()")

    @pytest.mark.anyio
    async def test_network_idle_errors_are_swallowed(self):
        session = make_session()
        session.cdp_client.send.Runtime.evaluate.side_effect = RuntimeError("context destroyed")
        await BrowserHandle(session, MagicMock()).wait_for_network_idle(timeout=0.5)


class TestAct:
    @pytest.mark.anyio
    async def test_act_passes_sensitive_data(self):
        agent = MagicMock()
        agent.run = AsyncMock(return_value=make_history())
        handle = BrowserHandle(make_session(), MagicMock(), action_max_steps=3)

        with patch("mcpkit.browser.Agent", return_value=agent) as agent_class:
            await handle.act("Type <secret>x_password</secret>", sensitive_data={"x_password": "hunter2"})

        assert agent_class.call_args.kwargs["sensitive_data"] == {"x_password": "hunter2"}
        agent.run.assert_awaited_once_with(max_steps=3)

    @pytest.mark.anyio
    async def test_act_not_done(self):
        agent = MagicMock()
        agent.run = AsyncMock(return_value=make_history(done=False))

        with patch("mcpkit.browser.Agent", return_value=agent):
            with pytest.raises(BrowserError):
                await BrowserHandle(make_session(), MagicMock()).act("Click Sign in")

    @pytest.mark.anyio
    async def test_act_agent_error(self):
        with patch("mcpkit.browser.Agent", side_effect=RuntimeError("bad llm")):
            with pytest.raises(BrowserError):
                await BrowserHandle(make_session(), MagicMock()).act("Click Sign in")


class TestExtract:
    @pytest.mark.anyio
    @pytest.mark.parametrize("completion", [Answer(value="42"), '{"value": "42"}', {"value": "42"}])
    async def test_completion_forms(self, completion):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=MagicMock(completion=completion))
        handle = BrowserHandle(make_session(evaluate_value="The answer is 42"), llm)

        result = await handle.extract("What is the answer?", Answer)

        assert result == Answer(value="42")
        assert llm.ainvoke.call_args.kwargs["output_format"] is Answer
        prompt = llm.ainvoke.call_args.args[0][1].content
        assert "The answer is 42" in prompt
        assert "https://example.com/" in prompt


class TestRunAgent:
    @pytest.mark.anyio
    async def test_uses_agent_llm_and_system_message(self):
        agent = MagicMock()
        agent.run = AsyncMock(return_value=make_history(final='{"actions": []}'))
        agent_llm = MagicMock()
        handle = BrowserHandle(make_session(), MagicMock(), agent_llm=agent_llm)

        with patch("mcpkit.browser.Agent", return_value=agent) as agent_class:
            result = await handle.run_agent("Explore", max_steps=20, system_message="Respond with JSON")

        assert result == '{"actions": []}'
        assert agent_class.call_args.kwargs["llm"] is agent_llm
        assert agent_class.call_args.kwargs["extend_system_message"] == "Respond with JSON"
        agent.run.assert_awaited_once_with(max_steps=20)


@pytest.fixture
def app_settings(tmp_path, monkeypatch) -> AppSettings:
    monkeypatch.delenv("BROWSERBASE_API_KEY", raising=False)
    settings = AppSettings()
    settings.browser.profiles_dir = str(tmp_path / "profiles")
    return settings


class TestOpenBrowser:
    @pytest.mark.anyio
    async def test_local_profile(self, app_settings, tmp_path):
        session = make_session()
        with (
            patch("mcpkit.browser.BrowserSession", return_value=session),
            patch("mcpkit.browser.BrowserProfile") as profile_class,
        ):
            async with open_browser(app_settings, MagicMock(), context_id="local-abc") as handle:
                assert handle.viewer_url is None

        assert profile_class.call_args.kwargs["user_data_dir"] == tmp_path / "profiles" / "local-abc"
        session.start.assert_awaited_once()
        session.kill.assert_awaited_once()

    @pytest.mark.anyio
    async def test_closed_on_error(self, app_settings):
        session = make_session()
        with (
            patch("mcpkit.browser.BrowserSession", return_value=session),
            patch("mcpkit.browser.BrowserProfile"),
        ):
            with pytest.raises(ValueError):
                async with open_browser(app_settings, MagicMock()):
                    raise ValueError("boom")

        session.kill.assert_awaited_once()

    @pytest.mark.anyio
    async def test_start_failure(self, app_settings):
        session = make_session()
        session.start.side_effect = RuntimeError("chromium not found")
        with (
            patch("mcpkit.browser.BrowserSession", return_value=session),
            patch("mcpkit.browser.BrowserProfile"),
        ):
            with pytest.raises(BrowserError):
                async with open_browser(app_settings, MagicMock()):
                    pass

    @pytest.mark.anyio
    async def test_remote_session_released(self, app_settings):
        app_settings.browserbase.api_key = SecretStr("bb-key")
        client = MagicMock()
        client.create_session = AsyncMock(return_value=RemoteSession(id="sess-1", connect_url="wss://bb/sess-1"))
        client.get_debug_url = AsyncMock(return_value="https://viewer/sess-1")
        client.release_session = AsyncMock()
        session = make_session()

        with (
            patch("mcpkit.browser.BrowserSession", return_value=session),
            patch("mcpkit.browser.BrowserProfile") as profile_class,
        ):
            async with open_browser(app_settings, MagicMock(), context_id="ctx-1", browserbase=client) as handle:
                assert handle.viewer_url == "https://viewer/sess-1"

        client.create_session.assert_awaited_once_with("ctx-1")
        assert profile_class.call_args.kwargs["cdp_url"] == "wss://bb/sess-1"
        client.release_session.assert_awaited_once_with("sess-1")

    @pytest.mark.anyio
    async def test_remote_session_failure(self, app_settings):
        app_settings.browserbase.api_key = SecretStr("bb-key")
        client = MagicMock()
        client.create_session = AsyncMock(side_effect=SessionProvisioningFailed("HTTP 402"))

        with pytest.raises(BrowserError):
            async with open_browser(app_settings, MagicMock(), browserbase=client):
                pass
