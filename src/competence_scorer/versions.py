"""Versioned scoring configurations.

Each questionnaire version ships a ``scoring.json`` (and optionally a
``market_benchmark.json``) in its own directory under ``data/``. The
registry resolves a version tag, falling back to the default version for
unknown or missing tags, and loads, validates and caches documents once.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Sequence, Union

from .config import ScorerSettings, get_config
from .schema import MarketBenchmark, ScoringConfiguration
from .validation import (
    ConfigurationError,
    load_document,
    parse_configuration,
    parse_market_benchmark,
    validate_configuration,
)

logger = logging.getLogger(__name__)

BUNDLED_DATA_DIR = Path(__file__).parent / "data"
DOCUMENT_SUFFIXES = (".json", ".yaml", ".yml")


def version_sort_key(version: str) -> tuple:
    """Natural sort key so that v2 < v10."""
    return tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part)
        for part in re.split(r"(\d+)", version)
        if part
    )


def _find_document(directory: Path, stem: str) -> Optional[Path]:
    for suffix in DOCUMENT_SUFFIXES:
        candidate = directory / f"{stem}{suffix}"
        if candidate.is_file():
            return candidate
    return None


class ScoringConfigRegistry:
    """Loads scoring configurations and market benchmarks by version tag.

    Directories are searched in order; a version found in an earlier
    directory shadows the same tag in a later one. The bundled data
    directory is always searched last.
    """

    def __init__(
        self,
        search_dirs: Optional[Sequence[Union[str, Path]]] = None,
        default_version: Optional[str] = None,
        include_bundled: bool = True,
    ):
        self.search_dirs = [Path(d) for d in (search_dirs or [])]
        if include_bundled:
            self.search_dirs.append(BUNDLED_DATA_DIR)
        self._configured_default = default_version
        self._version_dirs: Optional[dict[str, Path]] = None
        self._configs: dict[str, ScoringConfiguration] = {}
        self._benchmarks: dict[str, Optional[MarketBenchmark]] = {}

    @classmethod
    def from_settings(cls, settings: Optional[ScorerSettings] = None) -> "ScoringConfigRegistry":
        """Create a registry from scorer settings."""
        settings = settings or get_config()
        return cls(search_dirs=settings.config_dirs, default_version=settings.default_version)

    def _discover(self) -> dict[str, Path]:
        if self._version_dirs is None:
            found: dict[str, Path] = {}
            for base in self.search_dirs:
                if not base.is_dir():
                    logger.debug("Configuration directory %s does not exist", base)
                    continue
                for child in sorted(base.iterdir()):
                    if child.is_dir() and child.name not in found and _find_document(child, "scoring"):
                        found[child.name] = child
            self._version_dirs = found
            logger.debug("Discovered scoring versions: %s", ", ".join(self.available_versions()))
        return self._version_dirs

    def available_versions(self) -> list[str]:
        """All known version tags in natural order."""
        return sorted(self._discover(), key=version_sort_key)

    @property
    def latest_version(self) -> str:
        versions = self.available_versions()
        if not versions:
            raise ConfigurationError(
                f"No scoring configurations found in: {', '.join(str(d) for d in self.search_dirs)}"
            )
        return versions[-1]

    @property
    def default_version(self) -> str:
        """The configured default if it exists, otherwise the latest version."""
        configured = self._configured_default
        if configured and configured in self._discover():
            return configured
        if configured:
            logger.warning("Configured default version %s not found, using latest", configured)
        return self.latest_version

    def has_version(self, version: str) -> bool:
        return version in self._discover()

    def resolve(self, version: Optional[str] = None) -> str:
        """Resolve a version tag, falling back to the default version."""
        if version and version in self._discover():
            return version
        fallback = self.default_version
        if version:
            logger.warning("Unknown scoring version %s, falling back to %s", version, fallback)
        return fallback

    def document_path(self, version: str) -> Path:
        """Path of the scoring document for a known version tag."""
        return _find_document(self._discover()[version], "scoring")

    def get_config(self, version: Optional[str] = None) -> ScoringConfiguration:
        """Load (once) and return the configuration for a version tag."""
        resolved = self.resolve(version)
        if resolved not in self._configs:
            path = self.document_path(resolved)
            config = parse_configuration(load_document(path), version=resolved)
            validate_configuration(config)
            logger.info("Loaded scoring configuration %s from %s", resolved, path)
            self._configs[resolved] = config
        return self._configs[resolved]

    def get_market_benchmark(self, version: Optional[str] = None) -> Optional[MarketBenchmark]:
        """Market benchmark for a version.

        Versions without their own benchmark reuse the nearest earlier
        version that has one. Returns None if no benchmark exists at all.
        """
        resolved = self.resolve(version)
        if resolved in self._benchmarks:
            return self._benchmarks[resolved]

        benchmark = None
        versions = self.available_versions()
        for candidate in reversed(versions[:versions.index(resolved) + 1]):
            path = _find_document(self._discover()[candidate], "market_benchmark")
            if path is not None:
                benchmark = parse_market_benchmark(load_document(path))
                if candidate != resolved:
                    logger.debug("Market benchmark for %s taken from %s", resolved, candidate)
                break

        self._benchmarks[resolved] = benchmark
        return benchmark
