"""Authentication state machine.

Drives login to completion for one site:

    UNAUTHENTICATED -> ANALYZING_INITIAL -> CLICKING_LOGIN (optional)
        -> ATTEMPTING_AUTOFILL (optional) -> WAITING_FOR_MANUAL_LOGIN (optional)
        -> VERIFIED | SKIPPED | FAILED

Every automatic step degrades to the next one on failure. Only the manual step
can fail the run, and only after the operator said they were done.
"""

import logging
from typing import TYPE_CHECKING

from ..credentials import CredentialVault, Credentials
from ..exceptions import AuthenticationAborted, AuthenticationIncomplete
from .analyzer import AuthAnalyzer
from .models import Analysis, AuthOutcome, AuthResult, AuthState
from .operator import OperatorChannel, OperatorReply, parse_operator_reply
from .prompts import PASSWORD_SECRET, SUBMIT_LOGIN_ACTION, TYPE_PASSWORD_ACTION, TYPE_USERNAME_ACTION, USERNAME_SECRET

if TYPE_CHECKING:
    from ..browser import BrowserHandle

logger = logging.getLogger(__name__)

LOGIN_CLICK_IDLE_TIMEOUT = 5.0
AUTOFILL_IDLE_TIMEOUT = 10.0


def describe_analysis(analysis: Analysis, domain: str) -> str:
    """Operator-facing summary of an analysis."""
    a = analysis.analysis
    lines = [f"Authentication required for {domain}"]
    if a.summary:
        lines.append(f"  Summary: {a.summary}")
    if a.recommended_strategy:
        lines.append(f"  Recommended strategy: {a.recommended_strategy}")
    if a.login_button:
        lines.append(f"  Login action: {a.login_button}")
    if a.blockers:
        lines.append(f"  Blockers: {', '.join(a.blockers)}")
    if a.mfa and a.mfa.required:
        lines.append(f"  MFA: {a.mfa.description or 'required'}")
    if analysis.is_heuristic:
        lines.append("  (classified from the URL only)")
    return "\n".join(lines)


class AuthOrchestrator:
    """Runs the login state machine against one browser handle."""

    def __init__(
        self,
        browser: "BrowserHandle",
        vault: CredentialVault,
        operator: OperatorChannel,
        analyzer: AuthAnalyzer | None = None,
    ):
        self.browser = browser
        self.vault = vault
        self.operator = operator
        self.analyzer = analyzer or AuthAnalyzer()
        self.states: list[AuthState] = [AuthState.UNAUTHENTICATED]

    def _enter(self, state: AuthState) -> None:
        logger.info(f"Auth state: {self.states[-1].value} -> {state.value}")
        self.states.append(state)

    def _result(self, outcome: AuthOutcome, analysis: Analysis) -> AuthResult:
        return AuthResult(outcome=outcome, analysis=analysis, states=list(self.states))

    async def authenticate(self, url: str, domain: str) -> AuthResult:
        """Make sure the browser is signed in to `url`.

        Returns:
            AuthResult with outcome not_required, verified or skipped

        Raises:
            AuthenticationIncomplete: The page still requires sign-in after manual login.
            AuthenticationAborted: The operator aborted the manual step.
        """
        await self.browser.goto(url)

        self._enter(AuthState.ANALYZING_INITIAL)
        analysis = await self.analyzer.analyze(self.browser)
        if not analysis.requires_auth:
            logger.info(f"No authentication required for {domain}")
            self._enter(AuthState.VERIFIED)
            return self._result(AuthOutcome.NOT_REQUIRED, analysis)

        self.operator.notify(describe_analysis(analysis, domain))
        credentials = await self.vault.lookup(domain)

        if analysis.analysis.login_button:
            analysis = await self._click_login(analysis)

        if credentials and analysis.analysis.can_autofill:
            analysis = await self._autofill(credentials, analysis)
            if not analysis.requires_auth:
                self.operator.notify("Automatic login successful.")
                self._enter(AuthState.VERIFIED)
                return self._result(AuthOutcome.VERIFIED, analysis)
            self.operator.notify("Automatic login may have failed, falling back to manual authentication.")

        return await self._manual_login(url, domain, analysis)

    async def _click_login(self, analysis: Analysis) -> Analysis:
        self._enter(AuthState.CLICKING_LOGIN)
        action = analysis.analysis.login_button or ""
        try:
            await self.browser.act(action)
        except Exception as e:
            logger.warning(f"Failed to click login button ({action}): {e}")
            return analysis

        await self.browser.wait_for_network_idle(LOGIN_CLICK_IDLE_TIMEOUT)
        return await self.analyzer.analyze(self.browser)

    async def _autofill(self, credentials: Credentials, analysis: Analysis) -> Analysis:
        self._enter(AuthState.ATTEMPTING_AUTOFILL)
        secrets = {USERNAME_SECRET: credentials.username, PASSWORD_SECRET: credentials.password.get_secret_value()}
        try:
            await self.browser.act(TYPE_USERNAME_ACTION, sensitive_data=secrets)
            await self.browser.act(TYPE_PASSWORD_ACTION, sensitive_data=secrets)
            await self.browser.act(SUBMIT_LOGIN_ACTION)
        except Exception as e:
            logger.warning(f"Automatic login failed: {e}")
            return analysis

        await self.browser.wait_for_network_idle(AUTOFILL_IDLE_TIMEOUT)
        return await self.analyzer.analyze(self.browser)

    async def _manual_login(self, url: str, domain: str, analysis: Analysis) -> AuthResult:
        self._enter(AuthState.WAITING_FOR_MANUAL_LOGIN)

        if self.browser.viewer_url:
            self.operator.notify(f"Live browser session: {self.browser.viewer_url}")
            self.operator.open_viewer(self.browser.viewer_url)
        else:
            self.operator.notify("Use the browser window that was opened for this run.")
        self.operator.notify(
            f"Please log in to {domain}. Once you're logged in, press Enter to continue "
            "(type 'skip' to continue without authentication, or 'abort' to stop)."
        )

        reply = parse_operator_reply(await self.operator.read_line())

        if reply is OperatorReply.ABORT:
            self._enter(AuthState.FAILED)
            raise AuthenticationAborted("Authentication aborted by operator.")

        if reply is OperatorReply.SKIP:
            logger.info("Authentication skipped by operator, returning to original page")
            await self.browser.goto(url)
            self._enter(AuthState.SKIPPED)
            return self._result(AuthOutcome.SKIPPED, analysis)

        analysis = await self.analyzer.analyze(self.browser)
        if analysis.requires_auth:
            self._enter(AuthState.FAILED)
            raise AuthenticationIncomplete("Authentication still required after manual verification. Please sign in and re-run the command.")

        self.operator.notify("Authentication confirmed.")
        self._enter(AuthState.VERIFIED)
        return self._result(AuthOutcome.VERIFIED, analysis)
