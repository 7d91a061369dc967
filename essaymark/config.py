"""
Application configuration.

Thresholds, sizes and paths. A few can be overridden from
the environment (see ``load_config``).
"""
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from essaymark.utils.resource_loader import get_app_data_dir, get_cache_dir, get_sessions_dir


@dataclass(frozen=True)
class InteractionConfig:
    """Thresholds and default sizes used by the pointer state machine."""
    # Below this normalized distance a press/release pair counts as a click
    click_threshold: float = 0.01
    # Rectangle placed on a plain click
    default_rect_width: float = 0.06
    default_rect_height: float = 0.02
    # Offset of the default rectangle origin from the click point
    default_rect_offset_x: float = 0.03
    default_rect_offset_y: float = 0.01
    min_rect_size: float = 0.01
    # Normalized radius used to hit-test dots
    hit_tolerance: float = 0.015
    # Stamp card size as fractions of the page width
    stamp_width: float = 0.175
    stamp_height: float = 0.125


@dataclass(frozen=True)
class HistoryConfig:
    typing_idle_window: float = 1.0  # seconds
    max_depth: int = 100


@dataclass(frozen=True)
class SauvolaConfig:
    window: int = 41
    k: float = 0.2
    r: float = 128.0


@dataclass(frozen=True)
class AppPaths:
    data_dir: Path
    cache_dir: Path
    sessions_dir: Path

    @staticmethod
    def default() -> 'AppPaths':
        return AppPaths(
            data_dir=get_app_data_dir(),
            cache_dir=get_cache_dir(),
            sessions_dir=get_sessions_dir()
        )


@dataclass(frozen=True)
class AppConfig:
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    sauvola: SauvolaConfig = field(default_factory=SauvolaConfig)
    default_grader: str = "Teacher"


def load_config() -> AppConfig:
    """
    Build the configuration, applying environment overrides.

    Recognized variables:
        ESSAYMARK_TYPING_WINDOW: idle window for text-edit coalescing (seconds)
        ESSAYMARK_SAUVOLA_WINDOW: odd window size for binarization
        ESSAYMARK_SAUVOLA_K: Sauvola sensitivity
        ESSAYMARK_GRADER: default grader name printed on stamps

    Returns:
        AppConfig instance
    """
    config = AppConfig()

    typing_window = os.environ.get('ESSAYMARK_TYPING_WINDOW')
    if typing_window:
        config = replace(config, history=replace(config.history, typing_idle_window=float(typing_window)))

    window = os.environ.get('ESSAYMARK_SAUVOLA_WINDOW')
    if window:
        config = replace(config, sauvola=replace(config.sauvola, window=int(window)))

    k = os.environ.get('ESSAYMARK_SAUVOLA_K')
    if k:
        config = replace(config, sauvola=replace(config.sauvola, k=float(k)))

    grader = os.environ.get('ESSAYMARK_GRADER')
    if grader:
        config = replace(config, default_grader=grader)

    return config
