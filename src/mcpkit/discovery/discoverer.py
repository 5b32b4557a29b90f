"""Action discovery: one exploration run turned into a validated catalog.

The agent's final message should be a JSON catalog, but models routinely wrap
it in code fences. Fences are stripped, nothing else is repaired: anything that
is not valid JSON, or does not match the catalog schema, fails the run.
"""

import json
import logging
import re
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ..exceptions import DiscoveryError, MalformedDiscoveryResponse, SchemaValidationFailed
from .models import ActionCatalog
from .prompts import get_discovery_instruction, get_discovery_system_prompt

if TYPE_CHECKING:
    from ..browser import BrowserHandle

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 20

_LEADING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```$")


def strip_code_fences(content: str) -> str:
    """Remove a leading ```/```lang marker and a trailing ``` marker, if present."""
    text = content.strip()
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


def _error_path(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return ""
    return ".".join(str(part) for part in errors[0]["loc"])


def parse_discovery_response(content: str) -> ActionCatalog:
    """Parse and validate the agent's final message.

    Raises:
        MalformedDiscoveryResponse: If the text is not valid JSON.
        SchemaValidationFailed: If the JSON does not match the catalog schema.
    """
    text = strip_code_fences(content)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDiscoveryResponse(f"Discovery response is not valid JSON: {e}") from e

    try:
        return ActionCatalog.model_validate(parsed)
    except ValidationError as e:
        path = _error_path(e)
        first = e.errors()[0]["msg"] if e.errors() else str(e)
        location = path or "<root>"
        raise SchemaValidationFailed(f"Discovery response does not match the action schema at {location}: {first}", path=path) from e


class ActionDiscoverer:
    """Explores a site with an autonomous agent and returns its action catalog."""

    def __init__(self, browser: "BrowserHandle", max_steps: int = DEFAULT_MAX_STEPS):
        """Initialize discoverer.

        Args:
            browser: Live automation handle, already on the (authenticated) site
            max_steps: Step budget for the exploration agent
        """
        self.browser = browser
        self.max_steps = max_steps

    async def discover(self, domain: str) -> ActionCatalog:
        """Explore `domain` and return the validated catalog.

        Raises:
            DiscoveryError: If the agent fails or its answer cannot be parsed/validated.
        """
        logger.info(f"Discovering actions on {domain} (max {self.max_steps} steps)")
        try:
            message = await self.browser.run_agent(
                get_discovery_instruction(domain),
                max_steps=self.max_steps,
                system_message=get_discovery_system_prompt(),
            )
        except Exception as e:
            raise DiscoveryError(f"Failed to discover actions: {e}") from e

        if not message or not message.strip():
            raise MalformedDiscoveryResponse("Exploration agent returned no final message")

        logger.debug(f"Raw agent response:\n{message}")
        catalog = parse_discovery_response(message)

        for issue in catalog.placeholder_issues():
            logger.warning(f"Placeholder issue in {issue}")

        logger.info(f"Discovered {len(catalog.actions)} actions on {domain}")
        return catalog
