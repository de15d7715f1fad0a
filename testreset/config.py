"""
Configuration management for testreset.

Supports:
- TOML config files
- Environment variables
- Sensible defaults

Priority (highest to lowest):
1. Environment variables
2. Config file
3. Defaults
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib


# Default config file locations (searched in order)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / "testreset.toml",
    Path.cwd() / "config.toml",
    Path.home() / ".config" / "testreset" / "config.toml",
]

DEFAULT_SEQUENCE_START = 100000
DEFAULT_SEQUENCE_BLOCK = 1000


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseConfig:
    """Database connection configuration."""
    type: str = "postgres"               # postgres | sqlite
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    name: str = "test"
    prefix: str = "t_"
    path: str = ""                       # sqlite database file


@dataclass
class PathsConfig:
    """Code root and data root locations."""
    dirroot: str = "."
    dataroot: str = "./testdata"


@dataclass
class ResetConfig:
    """Snapshot and reset behaviour."""
    framework: str = "unit"
    sequence_start: int = DEFAULT_SEQUENCE_START
    sequence_block: int = DEFAULT_SEQUENCE_BLOCK
    scenario_running: bool = False       # This process writes the shared mailbox
    directory_permissions: int = 0o777
    skip_on_reset: List[str] = field(default_factory=lambda: [".htaccess"])
    skip_on_drop: List[str] = field(default_factory=lambda: ["lock"])


@dataclass
class OutputConfig:
    """Output configuration."""
    verbose: bool = True
    quiet: bool = False
    log_level: str = "WARNING"


@dataclass
class Config:
    """Main configuration container."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    reset: ResetConfig = field(default_factory=ResetConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Source tracking
    _config_file: Optional[Path] = None

    @property
    def dirroot(self) -> Path:
        return Path(self.paths.dirroot).resolve()

    @property
    def dataroot(self) -> Path:
        return Path(self.paths.dataroot).resolve()

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load configuration from file, then apply environment overrides.

        Args:
            config_path: Explicit path to config file. If None, searches default locations.

        Returns:
            Config instance with loaded values
        """
        config = cls()

        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            path = cls._find_config_file()

        if path:
            config = cls._load_from_file(path)
            config._config_file = path

        return config.override_from_env()

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """Find config file in default locations."""
        for path in CONFIG_SEARCH_PATHS:
            if path.exists():
                return path
        return None

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load config from TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        if "database" in data:
            db = data["database"]
            config.database = DatabaseConfig(
                type=db.get("type", config.database.type),
                host=db.get("host", config.database.host),
                port=db.get("port", config.database.port),
                user=db.get("user", config.database.user),
                password=db.get("password", config.database.password),
                name=db.get("name", config.database.name),
                prefix=db.get("prefix", config.database.prefix),
                path=db.get("path", config.database.path),
            )

        if "paths" in data:
            paths = data["paths"]
            config.paths = PathsConfig(
                dirroot=paths.get("dirroot", config.paths.dirroot),
                dataroot=paths.get("dataroot", config.paths.dataroot),
            )

        if "reset" in data:
            reset = data["reset"]
            config.reset = ResetConfig(
                framework=reset.get("framework", config.reset.framework),
                sequence_start=reset.get("sequence_start", config.reset.sequence_start),
                sequence_block=reset.get("sequence_block", config.reset.sequence_block),
                scenario_running=reset.get("scenario_running", config.reset.scenario_running),
                directory_permissions=reset.get(
                    "directory_permissions", config.reset.directory_permissions
                ),
                skip_on_reset=list(reset.get("skip_on_reset", config.reset.skip_on_reset)),
                skip_on_drop=list(reset.get("skip_on_drop", config.reset.skip_on_drop)),
            )

        if "output" in data:
            out = data["output"]
            config.output = OutputConfig(
                verbose=out.get("verbose", config.output.verbose),
                quiet=out.get("quiet", config.output.quiet),
                log_level=out.get("log_level", config.output.log_level),
            )

        return config

    def override_from_env(self) -> "Config":
        """
        Override config values from TESTRESET_* environment variables.

        Unset variables are ignored (keeping config file values).
        """
        if os.environ.get("TESTRESET_DATAROOT"):
            self.paths.dataroot = os.environ["TESTRESET_DATAROOT"]
        if os.environ.get("TESTRESET_DB_PASSWORD"):
            self.database.password = os.environ["TESTRESET_DB_PASSWORD"]

        sequence_start = os.environ.get("TESTRESET_SEQUENCE_START")
        if sequence_start:
            self.reset.sequence_start = int(sequence_start)

        scenario_running = _env_flag("TESTRESET_SCENARIO_RUNNING")
        if scenario_running is not None:
            self.reset.scenario_running = scenario_running

        return self

    def validate(self) -> list:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.database.type not in ("postgres", "sqlite"):
            errors.append(f"Unsupported database type: {self.database.type}")
        if self.database.type == "sqlite" and not self.database.path:
            errors.append("Database path is required for sqlite")
        if self.database.type == "postgres" and not self.database.host:
            errors.append("Database host is required")
        if not self.database.prefix:
            errors.append("Table prefix is required to isolate test tables")

        if not self.reset.framework or not self.reset.framework.isidentifier():
            errors.append(f"Invalid framework name: {self.reset.framework!r}")
        if self.reset.sequence_start < 1:
            errors.append("Sequence start must be positive")
        if self.reset.sequence_block < 1:
            errors.append("Sequence block size must be positive")

        if not self.paths.dataroot:
            errors.append("Dataroot is required")
        elif self.dataroot == self.dirroot:
            errors.append("Dataroot must not be the code root")

        return errors

    def summary(self, include_config_path: bool = True) -> str:
        """Generate human-readable config summary."""
        lines = []

        if include_config_path:
            if self._config_file:
                lines.append(f"Config: {self._config_file}")
            else:
                lines.append("Config: (defaults)")

        if self.database.type == "sqlite":
            lines.append(f"Database: sqlite {self.database.path} (prefix {self.database.prefix})")
        else:
            lines.append(
                f"Database: {self.database.user}@{self.database.host}:{self.database.port}/"
                f"{self.database.name} (prefix {self.database.prefix})"
            )
        lines.append(f"Dataroot: {self.dataroot}")
        lines.append(
            f"Sequences: start {self.reset.sequence_start}, block {self.reset.sequence_block}"
        )
        lines.append(f"Framework: {self.reset.framework}"
                     + (" (scenario process)" if self.reset.scenario_running else ""))

        return "\n".join(lines)
