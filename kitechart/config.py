"""kitechart — application configuration.

Loads .env variables into a typed config object.
Validates numeric variables on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from kitechart.chart.signals import DEFAULT_LOOK_AROUND, DEFAULT_MIN_DISTANCE
from kitechart.simulator.options import OptionSimConfig


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    relay_base_url: str
    log_level: str
    api_port: int
    signal_look_around: int
    signal_min_distance: int
    strike_step: float
    lot_size: int
    lots: int

    @property
    def option_sim(self) -> OptionSimConfig:
        """Simulator settings with the configured contract size."""
        return OptionSimConfig(
            strike_step=self.strike_step,
            lot_size=self.lot_size,
            lots=self.lots,
        )


def _env_number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for environment variable {name}: {raw!r}"
        ) from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the variable when a numeric setting cannot
    be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    return Config(
        relay_base_url=os.environ.get("KITE_RELAY_URL", "http://localhost:3001").rstrip("/"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_env_number("API_PORT", "8000", int),
        signal_look_around=_env_number(
            "SIGNAL_LOOK_AROUND", str(DEFAULT_LOOK_AROUND), int,
        ),
        signal_min_distance=_env_number(
            "SIGNAL_MIN_DISTANCE", str(DEFAULT_MIN_DISTANCE), int,
        ),
        strike_step=_env_number("STRIKE_STEP", "50", float),
        lot_size=_env_number("LOT_SIZE", "50", int),
        lots=_env_number("LOTS", "1", int),
    )
