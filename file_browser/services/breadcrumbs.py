from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Breadcrumb:
    label: str
    navigation_path: str


def build_breadcrumbs(relative_path: str) -> list[Breadcrumb]:
    """Return root-to-leaf crumbs with cumulative paths; root has none."""

    crumbs: list[Breadcrumb] = []
    running: list[str] = []
    for part in relative_path.split("/"):
        if part in ("", "."):
            continue
        running.append(part)
        crumbs.append(Breadcrumb(label=part, navigation_path="/".join(running)))
    return crumbs
