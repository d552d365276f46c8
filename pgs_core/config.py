# pgs_core/config.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .palette import ColorMatrix

logger = logging.getLogger(__name__)


@dataclass
class DecodeOptions:
    """Settings for a decode call"""
    skip_merge: bool = False
    force_merge_all: bool = False
    color_matrix: ColorMatrix = ColorMatrix.BT601
    default_duration_ms: int = 3000  # End time for a trailing caption nothing closes

    # Redundant-caption merge thresholds
    merge_gap_ticks: int = 10
    merge_min_duration_ms: float = 400.0
    merge_max_palette_batches: int = 2
    merge_max_height: int = 110
    merge_max_width: int = 300
    merge_min_groups: int = 3


class DecoderConfig:
    """JSON-backed decoder settings with defaults for missing keys."""

    def __init__(self, settings_path: Union[str, Path, None] = None):
        self.settings_path = Path(settings_path) if settings_path else Path.cwd() / 'pgs_settings.json'
        self.defaults = {
            'pgs_skip_merge': False,
            'pgs_force_merge_all': False,
            'pgs_color_matrix': 'BT601',
            'pgs_default_duration_ms': 3000,
            'pgs_merge_gap_ticks': 10,
            'pgs_merge_min_duration_ms': 400.0,
            'pgs_merge_max_palette_batches': 2,
            'pgs_merge_max_height': 110,
            'pgs_merge_max_width': 300,
            'pgs_merge_min_groups': 3,
        }
        self.settings = self.defaults.copy()
        self.load()

    def load(self):
        changed = False
        if self.settings_path.exists():
            try:
                with open(self.settings_path, 'r', encoding='utf-8') as f:
                    loaded_settings = json.load(f)

                for key, default_value in self.defaults.items():
                    if key not in loaded_settings:
                        loaded_settings[key] = default_value
                        changed = True
                self.settings = loaded_settings
            except (json.JSONDecodeError, IOError):
                logger.warning("Unreadable settings file %s, using defaults", self.settings_path)
                self.settings = self.defaults.copy()
                changed = True
        else:
            self.settings = self.defaults.copy()
            changed = True

        if changed:
            self.save()

    def save(self):
        try:
            settings_to_save = {k: self.settings.get(k) for k in self.defaults if k in self.settings}
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(settings_to_save, f, indent=4)
        except IOError as e:
            logger.error("Error saving settings: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    def set(self, key: str, value: Any):
        self.settings[key] = value

    def to_options(self) -> DecodeOptions:
        matrix_name = str(self.get('pgs_color_matrix', 'BT601')).upper()
        try:
            matrix = ColorMatrix[matrix_name]
        except KeyError:
            logger.warning("Unknown color matrix '%s', using BT601", matrix_name)
            matrix = ColorMatrix.BT601

        return DecodeOptions(
            skip_merge=bool(self.get('pgs_skip_merge')),
            force_merge_all=bool(self.get('pgs_force_merge_all')),
            color_matrix=matrix,
            default_duration_ms=int(self.get('pgs_default_duration_ms')),
            merge_gap_ticks=int(self.get('pgs_merge_gap_ticks')),
            merge_min_duration_ms=float(self.get('pgs_merge_min_duration_ms')),
            merge_max_palette_batches=int(self.get('pgs_merge_max_palette_batches')),
            merge_max_height=int(self.get('pgs_merge_max_height')),
            merge_max_width=int(self.get('pgs_merge_max_width')),
            merge_min_groups=int(self.get('pgs_merge_min_groups')),
        )


def resolve_options(options: Optional[DecodeOptions]) -> DecodeOptions:
    return options if options is not None else DecodeOptions()
