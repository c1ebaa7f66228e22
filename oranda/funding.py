"""Funding page support.

Reads GitHub's ``FUNDING.yml`` format and turns each entry into a link to the
matching sponsorship platform.

Key functions:
- load_funding: Parse a FUNDING.yml file.
- funding_links: Build the list of platform links.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import BuildError

# Platform key -> URL template, in display order
PLATFORMS = {
    "github": "https://github.com/sponsors/{}",
    "patreon": "https://www.patreon.com/{}",
    "open_collective": "https://opencollective.com/{}",
    "ko_fi": "https://ko-fi.com/{}",
    "tidelift": "https://tidelift.com/subscription/pkg/{}",
    "liberapay": "https://liberapay.com/{}",
    "issuehunt": "https://issuehunt.io/r/{}",
    "community_bridge": "https://funding.communitybridge.org/projects/{}",
    "lfx_crowdfunding": "https://crowdfunding.lfx.linuxfoundation.org/initiative/{}",
}

PLATFORM_LABELS = {
    "github": "GitHub Sponsors",
    "patreon": "Patreon",
    "open_collective": "Open Collective",
    "ko_fi": "Ko-fi",
    "tidelift": "Tidelift",
    "liberapay": "Liberapay",
    "issuehunt": "IssueHunt",
    "community_bridge": "Community Bridge",
    "lfx_crowdfunding": "LFX Crowdfunding",
    "custom": "Website",
}


@dataclass(frozen=True)
class FundingLink:
    platform: str
    label: str
    url: str


def load_funding(path: Path) -> dict[str, Any]:
    """Parse a FUNDING.yml file.

    Args:
        path: Path to the YAML file.

    Returns:
        Mapping of platform name to a handle or list of handles.

    Raises:
        BuildError: If the file is not valid YAML or not a mapping.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise BuildError(path, f"invalid funding YAML: {exc}", exc) from exc
    if not isinstance(data, dict):
        raise BuildError(path, "funding YAML must be a mapping of platform to handle")
    return data


def funding_links(funding: dict[str, Any]) -> list[FundingLink]:
    """Build platform links from parsed funding data.

    Unknown platforms are ignored. ``custom`` entries are used as URLs as-is.
    """
    links = []
    for platform, template in PLATFORMS.items():
        for handle in _handles(funding.get(platform)):
            links.append(
                FundingLink(platform, PLATFORM_LABELS[platform], template.format(handle))
            )
    for url in _handles(funding.get("custom")):
        links.append(FundingLink("custom", PLATFORM_LABELS["custom"], url))
    return links


def _handles(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return [str(item) for item in value if item]
    return [str(value)]
