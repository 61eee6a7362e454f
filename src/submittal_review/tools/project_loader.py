"""Load a review project (context, products, articles) from JSON."""

from __future__ import annotations

import json
from pathlib import Path

from submittal_review.models.schemas import ReviewProject


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a configured path, falling back to the repository root."""
    project_path = Path(path)
    if not project_path.exists():
        project_path = Path(__file__).parent.parent.parent.parent / path
    return project_path


def load_review_project(json_path: str | Path) -> ReviewProject:
    path = resolve_project_path(json_path)
    data = json.loads(path.read_text(encoding="utf-8"))
    return ReviewProject.model_validate(data)
