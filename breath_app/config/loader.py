"""
Configuration loader with 3-tier parameter precedence.

Global defaults are overridden by the protocol's entry in ``protocols.yaml``,
which is in turn overridden by per-session values. The bundled
``protocols.yaml`` ships inside this package; pass ``config_dir`` to read a
different one.
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .defaults import DefaultConfig, get_default_config

PROTOCOLS_FILE = "protocols.yaml"
BUNDLED_CONFIG_DIR = Path(__file__).parent


@dataclass(frozen=True)
class ConfigLoader:
    """Reads per-protocol overrides and merges them over the defaults."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a loader for `config_dir`, or for the bundled protocol file."""
        return cls(
            config_dir=Path(config_dir) if config_dir is not None else BUNDLED_CONFIG_DIR,
            defaults=get_default_config(),
        )

    @property
    def protocols_file(self) -> Path:
        return self.config_dir / PROTOCOLS_FILE

    def load_protocol_config(self, protocol_id: str) -> dict[str, Any]:
        """
        Load the override sections for one protocol.

        A missing file or a protocol without an entry yields no overrides.

        Raises:
            ValueError: if the file is not shaped as
                ``protocols: {<id>: {<section>: {...}}}``
        """
        if not self.protocols_file.exists():
            return {}

        with open(self.protocols_file) as f:
            document = yaml.safe_load(f)

        if document is None:
            return {}

        protocols = self._expect_mapping(document, "top level").get("protocols")
        if protocols is None:
            return {}

        entry = self._expect_mapping(protocols, "'protocols'").get(protocol_id)
        if entry is None:
            return {}

        entry = self._expect_mapping(entry, f"protocol '{protocol_id}'")
        for section, values in entry.items():
            self._expect_mapping(values, f"section '{protocol_id}.{section}'")

        return dict(entry)

    def merge_config(
        self,
        protocol_id: str,
        session_overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Per-session overrides (highest priority)
        2. Protocol entry in protocols.yaml
        3. Built-in defaults (lowest priority)
        """
        config = asdict(self.defaults)
        config = _merge_sections(config, self.load_protocol_config(protocol_id))

        if session_overrides:
            config = _merge_sections(config, session_overrides)

        return config

    def _expect_mapping(self, value: Any, where: str) -> Mapping[str, Any]:
        if not isinstance(value, Mapping):
            raise ValueError(
                f"{self.protocols_file}: {where} must be a mapping, "
                f"got {type(value).__name__}"
            )
        return value


def _merge_sections(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay `override` one section deep; unknown sections are kept for validation."""
    result = {section: dict(values) for section, values in base.items()}

    for section, values in override.items():
        if isinstance(values, Mapping) and isinstance(result.get(section), dict):
            result[section].update(values)
        else:
            result[section] = values

    return result
