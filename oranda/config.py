"""Configuration loading for oranda.

The config file (``oranda.json`` by default) is a partial layer applied on
top of built-in defaults. JSON is parsed with PyYAML, which accepts JSON as a
subset of YAML. Every path in the config is relative to the project root.

Key objects:
- Config: The complete, resolved configuration.
- load_config: Reads the config file and layers it over the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_FILE = "oranda.json"
DEFAULT_PORT = 7979
DEFAULT_DEBOUNCE = 1.0

README_CANDIDATES = ("README.md", "readme.md", "Readme.md", "README")
FUNDING_MD = "funding.md"
FUNDING_YML = ".github/FUNDING.yml"
MDBOOK_DIR = "docs"


@dataclass
class ProjectConfig:
    """Project metadata.

    Attributes:
        name: Project name, used as the site title.
        description: Short project description.
        repository: Repository URL.
        readme_path: Path to the markdown file rendered as the index page.
    """

    name: str = ""
    description: str | None = None
    repository: str | None = None
    readme_path: str = "README.md"


@dataclass
class BuildConfig:
    dist_dir: str = "public"
    static_dir: str = "static"
    path_prefix: str | None = None
    additional_pages: dict[str, str] = field(default_factory=dict)


@dataclass
class StyleConfig:
    theme: str = "dark"
    additional_css: list[str] = field(default_factory=list)
    favicon: str | None = None


@dataclass
class FundingConfig:
    md_path: str | None = None
    yml_path: str | None = None


@dataclass
class MdBookConfig:
    """mdbook component settings.

    Attributes:
        path: Directory holding the book's book.toml.
        theme: Whether to force the site theme onto the book.
    """

    path: str = MDBOOK_DIR
    theme: bool = True


ANALYTICS_PROVIDERS = {
    "google": "tracking_id",
    "plausible": "domain",
    "fathom": "site",
    "umami": "website",
}

# Providers without a default script location
SELF_HOSTED_ANALYTICS = ("umami",)


@dataclass
class AnalyticsConfig:
    """One analytics provider.

    Attributes:
        provider: One of ANALYTICS_PROVIDERS.
        site_id: The provider's id for the site (tracking id, domain, site or website).
        script_url: Script location, for providers that can be self-hosted.
    """

    provider: str
    site_id: str
    script_url: str | None = None


@dataclass
class SocialConfig:
    image: str | None = None
    image_alt: str | None = None
    twitter_account: str | None = None


@dataclass
class MarketingConfig:
    analytics: AnalyticsConfig | None = None
    social: SocialConfig = field(default_factory=SocialConfig)


@dataclass
class ComponentsConfig:
    funding: FundingConfig | None = None
    mdbook: MdBookConfig | None = None


@dataclass
class DevConfig:
    port: int = DEFAULT_PORT
    include_paths: list[str] = field(default_factory=list)
    debounce: float = DEFAULT_DEBOUNCE


@dataclass
class Config:
    """Complete oranda configuration.

    Attributes:
        project_root: Directory every relative path is resolved against.
        config_path: The file the config was read from (may not exist).
    """

    project_root: Path
    config_path: Path
    project: ProjectConfig = field(default_factory=ProjectConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    styles: StyleConfig = field(default_factory=StyleConfig)
    components: ComponentsConfig = field(default_factory=ComponentsConfig)
    marketing: MarketingConfig = field(default_factory=MarketingConfig)
    dev: DevConfig = field(default_factory=DevConfig)

    def resolve(self, path: str | Path) -> Path:
        """Resolve a config-relative path against the project root."""
        return self.project_root / path

    @property
    def readme_path(self) -> Path:
        return self.resolve(self.project.readme_path)

    @property
    def dist_dir(self) -> Path:
        return self.resolve(self.build.dist_dir)


def load_config(path: Path | None = None, project_root: Path | None = None) -> Config:
    """Load configuration from ``path``, layered over the defaults.

    Args:
        path: Config file. Defaults to ``oranda.json`` in the project root.
        project_root: Root for relative paths. Defaults to the current directory.

    Returns:
        The resolved Config.

    Raises:
        ConfigError: If the file exists but cannot be read or is invalid.
    """
    root = Path(project_root) if project_root is not None else Path.cwd()
    config_path = Path(path) if path is not None else root / DEFAULT_CONFIG_FILE
    config = default_config(root, config_path)
    layer = _read_layer(config_path)
    _apply_layer(config, layer)
    return config


def default_config(project_root: Path, config_path: Path) -> Config:
    """Build the default configuration by probing the project root."""
    config = Config(project_root=project_root, config_path=config_path)
    config.project.name = project_root.resolve().name
    config.project.readme_path = _detect_readme(project_root)
    config.components.funding = _detect_funding(project_root)
    if (project_root / MDBOOK_DIR / "book.toml").exists():
        config.components.mdbook = MdBookConfig()
    return config


def _read_layer(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(config_path, f"could not read config: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(config_path, f"invalid syntax: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(config_path, "expected an object at the top level")
    return loaded


def _apply_layer(config: Config, layer: dict[str, Any]) -> None:
    path = config.config_path
    project = _section(path, layer, "project")
    for key in ("name", "description", "repository", "readme_path"):
        if key in project:
            setattr(config.project, key, _expect(path, f"project.{key}", project[key], str))

    build = _section(path, layer, "build")
    for key in ("dist_dir", "static_dir", "path_prefix"):
        if key in build:
            setattr(config.build, key, _expect(path, f"build.{key}", build[key], str))
    if "additional_pages" in build:
        pages = _expect(path, "build.additional_pages", build["additional_pages"], dict)
        config.build.additional_pages = {
            str(name): _expect(path, f"build.additional_pages.{name}", value, str)
            for name, value in pages.items()
        }

    styles = _section(path, layer, "styles")
    for key in ("theme", "favicon"):
        if key in styles:
            setattr(config.styles, key, _expect(path, f"styles.{key}", styles[key], str))
    if "additional_css" in styles:
        config.styles.additional_css = _string_list(path, "styles.additional_css", styles["additional_css"])

    components = _section(path, layer, "components")
    if "funding" in components:
        config.components.funding = _funding_layer(config, components["funding"])
    if "mdbook" in components:
        config.components.mdbook = _mdbook_layer(path, components["mdbook"])

    marketing = _section(path, layer, "marketing")
    if "analytics" in marketing:
        config.marketing.analytics = _analytics_layer(path, marketing["analytics"])
    social = _section(path, marketing, "social")
    for key in ("image", "image_alt", "twitter_account"):
        if key in social:
            setattr(
                config.marketing.social,
                key,
                _expect(path, f"marketing.social.{key}", social[key], str),
            )

    dev = _section(path, layer, "dev")
    if "port" in dev:
        port = _expect(path, "dev.port", dev["port"], int)
        if not 0 < port < 65536:
            raise ConfigError(path, f"dev.port must be between 1 and 65535, got {port}")
        config.dev.port = port
    if "include_paths" in dev:
        config.dev.include_paths = _string_list(path, "dev.include_paths", dev["include_paths"])
    if "debounce" in dev:
        debounce = _expect(path, "dev.debounce", dev["debounce"], (int, float))
        if debounce < 0:
            raise ConfigError(path, "dev.debounce must not be negative")
        config.dev.debounce = float(debounce)


def _funding_layer(config: Config, value: Any) -> FundingConfig | None:
    path = config.config_path
    if value is False:
        return None
    if value is True:
        return _detect_funding(config.project_root) or FundingConfig()
    section = _expect(path, "components.funding", value, dict)
    funding = FundingConfig()
    for key in ("md_path", "yml_path"):
        if key in section:
            setattr(funding, key, _expect(path, f"components.funding.{key}", section[key], str))
    return funding


def _mdbook_layer(path: Path, value: Any) -> MdBookConfig | None:
    if value is False:
        return None
    if value is True:
        return MdBookConfig()
    section = _expect(path, "components.mdbook", value, dict)
    book = MdBookConfig()
    if "path" in section:
        book.path = _expect(path, "components.mdbook.path", section["path"], str)
    if "theme" in section:
        book.theme = _expect(path, "components.mdbook.theme", section["theme"], bool)
    return book


def _analytics_layer(path: Path, value: Any) -> AnalyticsConfig | None:
    if value is None:
        return None
    section = _expect(path, "marketing.analytics", value, dict)
    providers = [name for name in section if name in ANALYTICS_PROVIDERS]
    if len(providers) != 1:
        raise ConfigError(
            path,
            "marketing.analytics must name exactly one of "
            + ", ".join(ANALYTICS_PROVIDERS),
        )
    provider = providers[0]
    key = f"marketing.analytics.{provider}"
    settings = _expect(path, key, section[provider], dict)
    id_field = ANALYTICS_PROVIDERS[provider]
    if id_field not in settings:
        raise ConfigError(path, f"{key}.{id_field} is required")
    analytics = AnalyticsConfig(
        provider=provider,
        site_id=_expect(path, f"{key}.{id_field}", settings[id_field], str),
    )
    if "script_url" in settings:
        analytics.script_url = _expect(path, f"{key}.script_url", settings["script_url"], str)
    elif provider in SELF_HOSTED_ANALYTICS:
        raise ConfigError(path, f"{key}.script_url is required")
    return analytics


def _section(path: Path, layer: dict[str, Any], name: str) -> dict[str, Any]:
    value = layer.get(name)
    if value is None:
        return {}
    return _expect(path, name, value, dict)


def _expect(path: Path, key: str, value: Any, kind: type | tuple[type, ...]) -> Any:
    # bool is an int subclass; never accept it where a number is expected
    if isinstance(value, bool) and kind is not bool:
        raise ConfigError(path, f"{key} has the wrong type (got a boolean)")
    if not isinstance(value, kind):
        raise ConfigError(path, f"{key} has the wrong type (got {type(value).__name__})")
    return value


def _string_list(path: Path, key: str, value: Any) -> list[str]:
    items = _expect(path, key, value, list)
    return [_expect(path, f"{key}[{i}]", item, str) for i, item in enumerate(items)]


def _detect_readme(project_root: Path) -> str:
    for name in README_CANDIDATES:
        if (project_root / name).exists():
            return name
    return README_CANDIDATES[0]


def _detect_funding(project_root: Path) -> FundingConfig | None:
    md = FUNDING_MD if (project_root / FUNDING_MD).exists() else None
    yml = FUNDING_YML if (project_root / FUNDING_YML).exists() else None
    if md is None and yml is None:
        return None
    return FundingConfig(md_path=md, yml_path=yml)
