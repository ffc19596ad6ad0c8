"""
Named boolean gates for modules and features.

Resolution order: built-in defaults, then the optional JSON file
(FEATURE_FLAGS_FILE), then FEATURE_FLAGS from the environment. Runtime
toggles rewrite the file when one is configured.
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from boothhub.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FeatureFlag:
    name: str
    enabled: bool
    description: str = ""
    module: Optional[str] = None


DEFAULT_FLAGS = (
    FeatureFlag("authentication", True, "User authentication system"),
    FeatureFlag("database", True, "Database connectivity"),
    FeatureFlag("sales", True, "Sales management module", "sales"),
    FeatureFlag("costing", True, "Cost tracking module", "costing"),
    FeatureFlag("proposals", True, "Proposal creation module", "proposals"),
    FeatureFlag("monitoring", True, "Sales team monitoring module", "monitoring"),
    FeatureFlag("policies", False, "Policy management module", "policies"),
    FeatureFlag("payments", True, "Payment gateway integration", "payments"),
    FeatureFlag("gpsTracking", False, "GPS tracking feature"),
    FeatureFlag("realTimeUpdates", True, "Real-time WebSocket updates"),
    FeatureFlag("svgFloorPlan", True, "Interactive SVG floor plan", "sales"),
)


class FeatureFlags:
    def __init__(
        self,
        overrides: Optional[dict[str, bool]] = None,
        config_file: Optional[str] = None,
    ):
        self._flags: dict[str, FeatureFlag] = {
            flag.name: FeatureFlag(**asdict(flag)) for flag in DEFAULT_FLAGS
        }
        self.config_file = Path(config_file) if config_file else None
        self._load_file()
        for name, enabled in (overrides or {}).items():
            self._set(name, enabled)

    def _set(self, name: str, enabled: bool, description: str = "", module: Optional[str] = None) -> FeatureFlag:
        flag = self._flags.get(name)
        if flag is None:
            flag = self._flags[name] = FeatureFlag(name, enabled, description, module)
        else:
            flag.enabled = enabled
            if description:
                flag.description = description
            if module:
                flag.module = module
        return flag

    def enabled(self, name: str) -> bool:
        flag = self._flags.get(name)
        return flag.enabled if flag else False

    def enable(self, name: str, description: str = "", module: Optional[str] = None) -> FeatureFlag:
        flag = self._set(name, True, description, module)
        self._save_file()
        logger.info("feature_flag_changed", flag=name, enabled=True)
        return flag

    def disable(self, name: str) -> Optional[FeatureFlag]:
        flag = self._flags.get(name)
        if flag is None:
            return None
        flag.enabled = False
        self._save_file()
        logger.info("feature_flag_changed", flag=name, enabled=False)
        return flag

    def register(self, flag: FeatureFlag) -> None:
        self._flags[flag.name] = flag
        self._save_file()

    def get(self, name: str) -> Optional[FeatureFlag]:
        return self._flags.get(name)

    def all(self) -> list[FeatureFlag]:
        return list(self._flags.values())

    def module_flags(self, module: str) -> list[FeatureFlag]:
        return [flag for flag in self._flags.values() if flag.module == module]

    def _load_file(self) -> None:
        if not self.config_file or not self.config_file.exists():
            return
        try:
            entries = json.loads(self.config_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("feature_flags_load_failed", path=str(self.config_file), error=str(e))
            return
        for entry in entries:
            self._set(
                entry["name"],
                bool(entry.get("enabled", False)),
                entry.get("description", ""),
                entry.get("module"),
            )

    def _save_file(self) -> None:
        if not self.config_file:
            return
        try:
            self.config_file.write_text(
                json.dumps([asdict(flag) for flag in self._flags.values()], indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning("feature_flags_save_failed", path=str(self.config_file), error=str(e))
