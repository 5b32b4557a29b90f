"""Utilities for file persistence and helpers."""

import os
import re
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, content: str) -> None:
    """Atomically write text to `path` using temp + fsync + os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.tmp.", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def domain_slug(domain: str) -> str:
    """Filesystem/identifier-safe form of a domain (news.ycombinator.com -> news_ycombinator_com)."""
    slug = re.sub(r"[^\w]", "_", domain.strip().lower())
    return slug.strip("_") or "site"
