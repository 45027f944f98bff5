"""Load the fixed job catalog from its YAML seed file."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import yaml

from career_agent.log import get_logger
from career_agent.models import JobPosting

log = get_logger(__name__)

CATALOG_PATH: Path = Path(__file__).resolve().parent / "data" / "jobs.yaml"

Catalog = tuple[JobPosting, ...]


def load_catalog(path: Path | None = None) -> Catalog:
    """Parse a catalog file into an immutable tuple of postings.

    Raises ValueError when the file is not a list or ids repeat.
    """
    path = path or CATALOG_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or []

    if not isinstance(data, list):
        raise ValueError(f"Catalog {path} must be a list of postings")

    postings = tuple(JobPosting.from_dict(entry) for entry in data)
    ids = [p.id for p in postings]
    if len(ids) != len(set(ids)):
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        raise ValueError(f"Catalog {path} has duplicate ids: {', '.join(dupes)}")

    log.debug("Loaded %d postings from %s", len(postings), path.name)
    return postings


@lru_cache(maxsize=1)
def default_catalog() -> Catalog:
    """The bundled reference catalog, parsed once per process."""
    return load_catalog(CATALOG_PATH)
