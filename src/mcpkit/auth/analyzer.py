"""Authentication analyzer.

Asks the model whether the current page requires sign-in. The analyzer never
raises: if extraction fails it degrades to a URL keyword heuristic, and the
result is tagged so callers can tell the two apart.
"""

import logging
import re
from typing import TYPE_CHECKING

from .models import Analysis, AnalysisSource, AuthAnalysis
from .prompts import AUTH_ANALYSIS_INSTRUCTION

if TYPE_CHECKING:
    from ..browser import BrowserHandle

logger = logging.getLogger(__name__)

# Best-effort only: paths like /account can exist on sites without a login wall.
LOGIN_URL_PATTERN = re.compile(r"login|signin|auth|sign-in|account", re.IGNORECASE)


def heuristic_analysis(url: str, reason: str | None = None) -> Analysis:
    """Classify by URL keywords alone."""
    summary = f"Heuristic result after extract error: {reason}" if reason else "Heuristic result after extract error."
    return Analysis(
        source=AnalysisSource.HEURISTIC,
        analysis=AuthAnalysis(requires_auth=bool(LOGIN_URL_PATTERN.search(url)), summary=summary),
    )


class AuthAnalyzer:
    """Classifies the authentication requirement of the current page."""

    async def analyze(self, browser: "BrowserHandle") -> Analysis:
        """Analyze the page the browser is currently on.

        Args:
            browser: Live automation handle

        Returns:
            Derived analysis, or a heuristic one if extraction failed
        """
        try:
            result = await browser.extract(AUTH_ANALYSIS_INSTRUCTION, AuthAnalysis)
        except Exception as e:
            url = await browser.current_url()
            logger.warning(f"Auth extraction failed on {url or 'unknown page'}, using URL heuristic: {e}")
            return heuristic_analysis(url, str(e) or type(e).__name__)

        logger.debug(f"Auth analysis: requires_auth={result.requires_auth} strategy={result.recommended_strategy}")
        return Analysis(source=AnalysisSource.DERIVED, analysis=result)
