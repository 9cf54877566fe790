"""Configuration system for sparktop."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

VALID_METRICS = ("cpu", "memory", "disk_read", "disk_write")
VALID_SORT_KEYS = ("pid", "cpu", "memory", "disk_read", "disk_write", "disk_total")
VALID_DIRECTIONS = ("rtl", "ltr")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class EngineConfig:
    """Sampling, smoothing and retention settings."""

    tick_interval: float = 1.0  # Seconds between samples
    ewma_weight: float = 0.5  # Weight given to new samples, (0, 1]
    tombstone_ttl: int = 5  # Ticks an exited process stays visible
    sample_limit: int = 600  # History samples kept per metric (10 min at 1Hz)
    store_smoothed: bool = False  # Keep smoothed values in history instead of raw
    failure_threshold: int = 3  # Consecutive failed samples before flagging


@dataclass
class DisplayConfig:
    """How the process table is presented."""

    metric: str = "cpu"  # Metric drawn in the history column
    sort_by: str = "cpu"
    descending: bool = True
    direction: str = "rtl"  # "rtl" (newest right) or "ltr" (newest left)
    min_history_width: int = 10  # Narrowest history column


@dataclass
class LoggingConfig:
    """Log file settings."""

    level: str = "INFO"
    max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "sparktop"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "sparktop"

    @property
    def log_path(self) -> Path:
        """Log file path (JSON lines)."""
        return self.state_dir / "sparktop.log"

    def dumps(self) -> str:
        """Render the config as TOML text."""
        doc = tomlkit.document()
        for name in ("engine", "display", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())
        return tomlkit.dumps(doc)

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.dumps())

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        Raises:
            ValueError: If the file cannot be parsed or a value is out of range.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        config = cls(
            engine=_load_engine_config(data.get("engine", {})),
            display=_load_display_config(data.get("display", {})),
            logging=_load_logging_config(data.get("logging", {})),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ValueError for out-of-range values."""
        engine = self.engine
        if engine.tick_interval <= 0:
            raise ValueError(f"tick_interval must be > 0, got {engine.tick_interval}")
        if not 0.0 < engine.ewma_weight <= 1.0:
            raise ValueError(f"ewma_weight must be in (0, 1], got {engine.ewma_weight}")
        if engine.tombstone_ttl < 0:
            raise ValueError(f"tombstone_ttl must be >= 0, got {engine.tombstone_ttl}")
        if engine.sample_limit < 1:
            raise ValueError(f"sample_limit must be >= 1, got {engine.sample_limit}")
        if engine.failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {engine.failure_threshold}")

        display = self.display
        if display.metric not in VALID_METRICS:
            raise ValueError(f"Invalid metric: {display.metric!r}. Must be one of {VALID_METRICS}")
        if display.sort_by not in VALID_SORT_KEYS:
            raise ValueError(
                f"Invalid sort_by: {display.sort_by!r}. Must be one of {VALID_SORT_KEYS}"
            )
        if display.direction not in VALID_DIRECTIONS:
            raise ValueError(
                f"Invalid direction: {display.direction!r}. Must be one of {VALID_DIRECTIONS}"
            )
        if display.min_history_width < 1:
            raise ValueError(f"min_history_width must be >= 1, got {display.min_history_width}")

        if self.logging.level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {self.logging.level!r}. Must be one of {VALID_LOG_LEVELS}"
            )


def _load_engine_config(data: dict) -> EngineConfig:
    """Load engine config from TOML data, using dataclass defaults for missing fields."""
    d = EngineConfig()
    return EngineConfig(
        tick_interval=float(data.get("tick_interval", d.tick_interval)),
        ewma_weight=float(data.get("ewma_weight", d.ewma_weight)),
        tombstone_ttl=int(data.get("tombstone_ttl", d.tombstone_ttl)),
        sample_limit=int(data.get("sample_limit", d.sample_limit)),
        store_smoothed=bool(data.get("store_smoothed", d.store_smoothed)),
        failure_threshold=int(data.get("failure_threshold", d.failure_threshold)),
    )


def _load_display_config(data: dict) -> DisplayConfig:
    """Load display config from TOML data."""
    d = DisplayConfig()
    return DisplayConfig(
        metric=str(data.get("metric", d.metric)),
        sort_by=str(data.get("sort_by", d.sort_by)),
        descending=bool(data.get("descending", d.descending)),
        direction=str(data.get("direction", d.direction)),
        min_history_width=int(data.get("min_history_width", d.min_history_width)),
    )


def _load_logging_config(data: dict) -> LoggingConfig:
    """Load logging config from TOML data."""
    d = LoggingConfig()
    return LoggingConfig(
        level=str(data.get("level", d.level)),
        max_bytes=int(data.get("max_bytes", d.max_bytes)),
        backup_count=int(data.get("backup_count", d.backup_count)),
    )
