"""Default generator: persist a validated catalog for the server scaffold.

Layout::

    <output_dir>/<domain_slug>_mcp_server/catalog.yaml

The file is plain YAML (camelCase keys, action and key order preserved) and is
read back by ``load_catalog()`` with the same validation discovery applies.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import yaml
from pydantic import ValidationError

from .discovery.models import ActionCatalog
from .exceptions import SchemaValidationFailed
from .utils import atomic_write_text, domain_slug

logger = logging.getLogger(__name__)

CATALOG_FILENAME = "catalog.yaml"


class CatalogGenerator(Protocol):
    """Receives the validated catalog at the end of a pipeline run."""

    def write(self, domain: str, url: str, catalog: ActionCatalog) -> Path: ...


def get_server_dir(output_dir: Path, domain: str) -> Path:
    """Directory holding the generated files for `domain`."""
    return output_dir / f"{domain_slug(domain)}_mcp_server"


class CatalogWriter:
    """Writes the catalog as structured data under an output directory."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir).expanduser()

    def write(self, domain: str, url: str, catalog: ActionCatalog) -> Path:
        """Write the catalog for `domain` and return the file path.

        An existing catalog for the same domain is replaced.
        """
        path = get_server_dir(self.output_dir, domain) / CATALOG_FILENAME
        data = {
            "domain": domain,
            "url": url,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            **catalog.to_data(),
        }
        content = yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
        atomic_write_text(path, content)
        logger.info(f"Wrote {len(catalog.actions)} actions to {path}")
        return path


def load_catalog(path: str | Path) -> tuple[str, str, ActionCatalog]:
    """Read a catalog file back.

    `path` may be the catalog file itself or its server directory.

    Returns:
        (domain, url, catalog)

    Raises:
        FileNotFoundError: If no catalog exists at `path`.
        SchemaValidationFailed: If the file is not a valid catalog.
    """
    path = Path(path).expanduser()
    if path.is_dir():
        path = path / CATALOG_FILENAME

    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SchemaValidationFailed(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise SchemaValidationFailed(f"Catalog file {path} does not contain a mapping")

    domain = data.get("domain")
    url = data.get("url")
    if not domain or not url:
        raise SchemaValidationFailed(f"Catalog file {path} is missing domain or url", path="domain" if not domain else "url")

    try:
        catalog = ActionCatalog.model_validate({"actions": data.get("actions")})
    except ValidationError as e:
        errors = e.errors()
        loc = ".".join(str(p) for p in errors[0]["loc"]) if errors else ""
        raise SchemaValidationFailed(f"Invalid catalog in {path} at {loc or '<root>'}: {errors[0]['msg'] if errors else e}", path=loc) from e

    return str(domain), str(url), catalog
