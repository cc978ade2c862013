from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from ._base import hbdir
from .util import jsondict

DefaultSettingsFile = hbdir / "settings.json"
"""The settings file that is used if no explicit file is given."""


@dataclass(frozen=True)
class HintSettings:
    """Controls how hints are processed and reported.

    Attributes
    ----------
    show_alias_hints : bool
        Whether the warnings for unmatched join hints should also mention the alternate spelling of the hint (e.g.
        ``TIDB_HJ`` for ``HASH_JOIN``). Enabled by default.
    verbose : bool
        Whether the different processing steps should log their progress to stderr. Disabled by default.
    """

    show_alias_hints: bool = True
    verbose: bool = False

    @staticmethod
    def load(path: str | Path) -> HintSettings:
        """Reads the settings from a JSON file. Keys that are missing from the file keep their default values.

        Raises
        ------
        ValueError
            If the file contains keys that do not correspond to any setting, or is not a JSON object
        """
        with open(path, "r") as settings_file:
            raw_settings = json.load(settings_file)
        return HintSettings.from_dict(raw_settings)

    @staticmethod
    def from_dict(raw_settings: jsondict) -> HintSettings:
        """Creates settings from a dictionary of setting name to value."""
        if not isinstance(raw_settings, dict):
            raise ValueError(f"Settings must be a JSON object, not {type(raw_settings).__name__}")
        known_settings = {setting.name for setting in fields(HintSettings)}
        unknown_settings = set(raw_settings) - known_settings
        if unknown_settings:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown_settings))}")
        return HintSettings(**raw_settings)

    @staticmethod
    def default(path: Optional[str | Path] = None) -> HintSettings:
        """Provides the settings from the default settings file, or the default settings if there is no such file."""
        settings_file = Path(path) if path else DefaultSettingsFile
        return HintSettings.load(settings_file) if settings_file.is_file() else HintSettings()

    def __json__(self) -> jsondict:
        return asdict(self)
