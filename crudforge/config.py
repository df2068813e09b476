"""
Crudforge Config - Project configuration read from YAML

Looks for ``configs/config.yaml`` (then the docker/k3d variants) under the
project root; a project without any config gets MySQL defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from crudforge.spec import DatabaseDriver

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "configs/config.yaml"
ALTERNATIVE_CONFIGS = (
    "configs/config-docker.yaml",
    "configs/config-k3d.yaml",
)

_DRIVER_ALIASES: dict[str, DatabaseDriver] = {
    "mysql": DatabaseDriver.MYSQL,
    "postgres": DatabaseDriver.POSTGRES,
    "postgresql": DatabaseDriver.POSTGRES,
    "sqlite": DatabaseDriver.SQLITE,
    "sqlite3": DatabaseDriver.SQLITE,
}


class DatabaseConfig(BaseModel):
    """Database connection settings"""

    driver: str = "mysql"
    host: str = "localhost"
    port: int = 3306
    username: str = "root"
    password: str = ""
    database: str = ""
    charset: str = "utf8mb4"

    def normalized_driver(self) -> DatabaseDriver | None:
        return _DRIVER_ALIASES.get(self.driver.lower())

    def url(self) -> str:
        """SQLAlchemy URL for the configured database."""
        driver = self.normalized_driver()
        if driver is DatabaseDriver.SQLITE:
            return f"sqlite:///{self.database}"
        if driver is DatabaseDriver.POSTGRES:
            return (
                f"postgresql://{self.username}:{self.password}"
                f"@{self.host}:{self.port}/{self.database}"
            )
        return (
            f"mysql+pymysql://{self.username}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}?charset={self.charset}"
        )


class LayoutConfig(BaseModel):
    """Where each generated layer lives inside the target project"""

    package: str = "app"
    models_dir: str = Field("app/models", alias="modelsDir")
    repositories_dir: str = Field("app/repositories", alias="repositoriesDir")
    services_dir: str = Field("app/services", alias="servicesDir")
    handlers_dir: str = Field("app/handlers", alias="handlersDir")
    server_dir: str = Field("app/server", alias="serverDir")
    tests_dir: str = Field("tests", alias="testsDir")
    migrations_dir: str = Field("migrations", alias="migrationsDir")

    model_config = {"populate_by_name": True}


class ProjectConfig(BaseModel):
    """Complete generator configuration"""

    database: DatabaseConfig = DatabaseConfig()
    layout: LayoutConfig = LayoutConfig()

    model_config = {"populate_by_name": True}

    @property
    def database_type(self) -> str:
        """SQL dialect used by migration templates; unknown drivers fall back to mysql."""
        driver = self.database.normalized_driver()
        return driver.value if driver else DatabaseDriver.MYSQL.value

    @property
    def migration_dir(self) -> str:
        driver = self.database.normalized_driver()
        if driver is None:
            return self.layout.migrations_dir
        return f"{self.layout.migrations_dir}/{driver.value}"

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "ProjectConfig":
        """Parse YAML content into a ProjectConfig"""
        data = yaml.safe_load(yaml_content) or {}
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "ProjectConfig":
        """Load config from a YAML file"""
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"))


def load_config(root: Path, config_path: str | Path | None = None) -> ProjectConfig:
    """
    Locate and load the project configuration.

    Args:
        root: Project root the relative config paths are resolved against
        config_path: Explicit config file; must exist when given

    Returns:
        The loaded config, or defaults when no config file is found
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.is_absolute():
            path = root / path
        return ProjectConfig.from_file(path)

    for candidate in (DEFAULT_CONFIG, *ALTERNATIVE_CONFIGS):
        path = root / candidate
        if path.exists():
            logger.debug("Using config %s", path)
            return ProjectConfig.from_file(path)

    logger.debug("No config file under %s, using defaults", root)
    return ProjectConfig()
